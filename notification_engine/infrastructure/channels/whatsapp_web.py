"""Browser automation of WhatsApp Web using Playwright."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import quote

from playwright.sync_api import BrowserContext, Page, Playwright, sync_playwright
from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

from notification_engine.config import Settings
from notification_engine.utils import mask_phone

logger = logging.getLogger(__name__)

WHATSAPP_WEB_URL = "https://web.whatsapp.com"
SEARCH_BOX_SELECTOR = "div[contenteditable='true'][data-tab='3']"
QR_CODE_SELECTOR = "canvas[aria-label='Scan me!']"
SEND_BUTTON_SELECTOR = "button[data-testid='compose-btn-send'], button[aria-label='Send']"
SENT_INDICATOR_SELECTOR = "span[data-testid='msg-check'], span[data-icon='msg-check']"
INVALID_NUMBER_TEXT = "Phone number shared via url is invalid"
BLOCKED_TEXT_PATTERN = "text=/blocked|bloqueado/i"


class WhatsAppWebError(RuntimeError):
    """Raised when WhatsApp Web cannot deliver a message."""


@dataclass(frozen=True)
class WhatsAppWebHealth:
    enabled: bool
    browser_started: bool
    logged_in: bool


def build_chat_url(phone: str, message: str) -> str:
    """Return the WhatsApp Web URL that opens a chat with ``message`` prefilled."""

    return f"{WHATSAPP_WEB_URL}/send?phone={phone}&text={quote(message, safe='')}"


class WhatsAppWebClient:
    """Own a persistent Chromium session logged into WhatsApp Web.

    Playwright's sync API is bound to the thread that started it, so every
    browser operation runs on a single dedicated worker thread.
    """

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="whatsapp-web")
        self._playwright: Playwright | None = None
        self._context: BrowserContext | None = None
        self._page: Page | None = None
        self._logged_in = False

    def send_message(self, phone: str, message: str) -> None:
        self._executor.submit(self._send_message, phone, message).result()

    def reset(self) -> None:
        self._executor.submit(self._close_browser).result()
        logger.info("WhatsApp Web session reset")

    def close(self) -> None:
        try:
            self._executor.submit(self._close_browser).result()
        finally:
            self._executor.shutdown(wait=True)

    def health(self) -> WhatsAppWebHealth:
        return WhatsAppWebHealth(
            enabled=self.settings.whatsapp_enabled,
            browser_started=self._context is not None,
            logged_in=self._logged_in,
        )

    def _send_message(self, phone: str, message: str) -> None:
        page = self._ensure_logged_in()
        timeout_ms = self.settings.whatsapp_timeout_seconds * 1000

        logger.debug("Opening WhatsApp chat for %s", mask_phone(phone))
        page.goto(build_chat_url(phone, message), timeout=timeout_ms)
        page.wait_for_timeout(3000)

        if page.get_by_text(INVALID_NUMBER_TEXT).count() > 0:
            raise WhatsAppWebError("Invalid WhatsApp number format")
        if page.locator(BLOCKED_TEXT_PATTERN).count() > 0:
            raise WhatsAppWebError("User has blocked WhatsApp messages")

        try:
            send_button = page.locator(SEND_BUTTON_SELECTOR).first
            send_button.wait_for(state="visible", timeout=timeout_ms)
            send_button.click()
        except PlaywrightError as exc:
            raise WhatsAppWebError(f"Error sending WhatsApp message: {exc}") from exc

        try:
            page.locator(SENT_INDICATOR_SELECTOR).first.wait_for(
                state="attached", timeout=timeout_ms
            )
        except PlaywrightTimeoutError:
            logger.warning("Send confirmation not detected, but message was sent")
        page.wait_for_timeout(1000)

    def _ensure_logged_in(self) -> Page:
        page = self._ensure_browser()
        if self._logged_in:
            return page

        qr_timeout_ms = self.settings.whatsapp_qr_timeout_seconds * 1000
        page.goto(WHATSAPP_WEB_URL, timeout=self.settings.whatsapp_timeout_seconds * 1000)
        try:
            page.wait_for_selector(SEARCH_BOX_SELECTOR, timeout=qr_timeout_ms)
            logger.info("Already logged in to WhatsApp Web")
        except PlaywrightTimeoutError:
            logger.info("Please scan the QR Code to login to WhatsApp Web")
            try:
                page.wait_for_selector(QR_CODE_SELECTOR, state="detached", timeout=qr_timeout_ms)
                page.wait_for_selector(
                    SEARCH_BOX_SELECTOR, timeout=self.settings.whatsapp_timeout_seconds * 1000
                )
            except PlaywrightError as exc:
                raise WhatsAppWebError("Failed to login to WhatsApp Web") from exc
            logger.info("Successfully logged in to WhatsApp Web")

        self._logged_in = True
        return page

    def _ensure_browser(self) -> Page:
        if self._page is not None:
            return self._page

        session_dir = Path(self.settings.whatsapp_session_path)
        session_dir.mkdir(parents=True, exist_ok=True)
        logger.info("Starting WhatsApp Web browser with session at %s", session_dir.resolve())

        self._playwright = sync_playwright().start()
        self._context = self._playwright.chromium.launch_persistent_context(
            str(session_dir),
            headless=self.settings.whatsapp_headless,
            args=[
                "--disable-blink-features=AutomationControlled",
                "--disable-dev-shm-usage",
                "--no-sandbox",
                "--disable-notifications",
            ],
        )
        self._page = self._context.pages[0] if self._context.pages else self._context.new_page()
        return self._page

    def _close_browser(self) -> None:
        if self._context is not None:
            try:
                self._context.close()
            except PlaywrightError as exc:
                logger.error("Error closing WhatsApp Web browser: %s", exc)
        if self._playwright is not None:
            self._playwright.stop()
        self._playwright = None
        self._context = None
        self._page = None
        self._logged_in = False


__all__ = ["WhatsAppWebClient", "WhatsAppWebError", "WhatsAppWebHealth", "build_chat_url"]
