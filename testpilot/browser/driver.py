"""
Playwright page automation implementation.
"""

import asyncio
import json
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Type, Union

from playwright.async_api import (
    Browser,
    BrowserContext,
    ConsoleMessage,
    Error as PlaywrightError,
    Locator,
    Page,
    Request,
    Response,
    async_playwright,
)
from pydantic import BaseModel, Field

from testpilot.config.agent_prompts import PromptTemplates
from testpilot.config.settings import Settings, get_settings
from testpilot.core.context import ExecutionContext
from testpilot.core.interfaces import PageAutomation, StructuredCompletion
from testpilot.core.types import CandidateAction, ExtractionResult
from testpilot.error_handling.exceptions import BrowserError, ElementNotFoundError
from testpilot.monitoring.logger import get_logger, log_performance_metric

# Collects elements a step can refer to, with an absolute xpath for each.
COLLECT_ELEMENTS_SCRIPT = """
(maxElements) => {
  const selector = [
    'a', 'button', 'input', 'select', 'textarea', 'summary', 'label', 'img',
    'h1', 'h2', 'h3', 'h4', 'h5', 'h6', 'li', 'td', 'th',
    '[role]', '[onclick]', '[contenteditable="true"]', '[tabindex]'
  ].join(',');
  const xpathOf = (el) => {
    const parts = [];
    for (let node = el; node && node.nodeType === 1; node = node.parentElement) {
      let index = 1;
      for (let sib = node.previousElementSibling; sib; sib = sib.previousElementSibling) {
        if (sib.tagName === node.tagName) index++;
      }
      parts.unshift(`${node.tagName.toLowerCase()}[${index}]`);
    }
    return '/' + parts.join('/');
  };
  const elements = [];
  for (const el of document.querySelectorAll(selector)) {
    if (elements.length >= maxElements) break;
    const rect = el.getBoundingClientRect();
    const text = (el.innerText || el.value || el.getAttribute('alt') || '').trim();
    elements.push({
      index: elements.length,
      tag: el.tagName.toLowerCase(),
      type: el.getAttribute('type') || undefined,
      role: el.getAttribute('role') || undefined,
      name: el.getAttribute('name') || undefined,
      label: el.getAttribute('aria-label') || el.getAttribute('placeholder') || undefined,
      text: text.slice(0, 80),
      visible: rect.width > 0 && rect.height > 0,
      xpath: xpathOf(el),
    });
  }
  return elements;
}
"""

CLICK_METHODS = {"click"}
DBLCLICK_METHODS = {"dblclick", "doubleClick", "double_click"}
FILL_METHODS = {"fill"}
TYPE_METHODS = {"type", "press_sequentially"}
PRESS_METHODS = {"press", "pressKey", "press_key"}
SELECT_METHODS = {"selectOption", "select_option"}
SCROLL_TO_METHODS = {"scroll", "scrollTo", "scrollIntoView", "scroll_into_view"}
WHEEL_METHODS = {"mouse.wheel", "scrollByPixelOffset", "nextChunk", "prevChunk"}
DRAG_METHODS = {"dragAndDrop", "drag_and_drop", "drag_to"}

STATE_KINDS = ("visible", "hidden", "enabled", "disabled", "checked", "unchecked", "value")


class LocatedElement(BaseModel):
    """One element chosen by the LLM from the collected element list."""

    element_index: int = Field(..., ge=0)
    method: str
    arguments: List[str] = Field(default_factory=list)
    description: str = ""


class LocateResult(BaseModel):
    """LLM answer to a locate query."""

    candidates: List[LocatedElement] = Field(default_factory=list)


class PlaywrightPageAutomation(PageAutomation):
    """Page automation on Playwright with LLM-assisted locating and extraction."""

    def __init__(
        self,
        llm: StructuredCompletion,
        settings: Optional[Settings] = None,
        context: Optional[ExecutionContext] = None,
        headless: Optional[bool] = None,
    ) -> None:
        """
        Initialize the Playwright page automation.

        Args:
            llm: Client used to pick located elements and to extract data
            settings: Browser and limit settings (defaults to cached settings)
            context: Execution context receiving console and network errors
            headless: Run browser in headless mode (overrides settings)
        """
        self.llm = llm
        self.settings = settings or get_settings()
        self.headless = headless if headless is not None else self.settings.browser_headless
        self.viewport_width = self.settings.browser_viewport_width
        self.viewport_height = self.settings.browser_viewport_height

        self.logger = get_logger("testpilot.browser.driver")
        self._execution_context = context
        self._playwright = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None
        self._page: Optional[Page] = None

    async def start(self) -> None:
        """Start the browser and create a page."""
        if self._playwright is None:
            self._playwright = await async_playwright().start()

        if self._browser is None:
            self.logger.info(
                "Starting browser",
                extra={
                    "headless": self.headless,
                    "viewport": f"{self.viewport_width}x{self.viewport_height}",
                },
            )
            self._browser = await self._playwright.chromium.launch(
                headless=self.headless,
                args=["--no-sandbox", "--disable-dev-shm-usage"],
                env=os.environ,
            )

        if self._context is None:
            self._context = await self._browser.new_context(
                viewport={
                    "width": self.viewport_width,
                    "height": self.viewport_height,
                },
            )

        if self._page is None:
            self._page = await self._context.new_page()
            self._page.on("console", self._on_console)
            self._page.on("requestfailed", self._on_request_failed)
            self._page.on("response", self._on_response)

    async def stop(self) -> None:
        """Stop the browser and cleanup resources."""
        if self._page:
            await self._page.close()
            self._page = None

        if self._context:
            await self._context.close()
            self._context = None

        if self._browser:
            await self._browser.close()
            self._browser = None

        if self._playwright:
            await self._playwright.stop()
            self._playwright = None

        self.logger.info("Browser stopped")

    def _require_page(self) -> Page:
        if not self._page:
            raise BrowserError("Browser not started. Call start() first.")
        return self._page

    def _on_console(self, message: ConsoleMessage) -> None:
        if self._execution_context is not None:
            self._execution_context.add_console_message(message.type, message.text)

    def _on_request_failed(self, request: Request) -> None:
        if self._execution_context is not None:
            self._execution_context.add_network_error(
                f"{request.method} {request.url} failed: {request.failure}"
            )

    def _on_response(self, response: Response) -> None:
        if self._execution_context is not None and response.status >= 400:
            self._execution_context.add_network_error(
                f"{response.request.method} {response.url} -> "
                f"{response.status} {response.status_text}"
            )

    async def navigate(self, url: str, timeout_ms: int) -> None:
        """Navigate to a URL."""
        page = self._require_page()
        self.logger.info("Navigating to URL", extra={"url": url})
        start_time = asyncio.get_running_loop().time()

        try:
            await page.goto(url, timeout=timeout_ms)
        except PlaywrightError as exc:
            raise BrowserError(
                f"Navigation to {url} failed: {exc.message}", url=url, action="goto", cause=exc
            ) from exc

        elapsed_ms = (asyncio.get_running_loop().time() - start_time) * 1000
        log_performance_metric("page_navigation", elapsed_ms, context={"url": url})

    async def wait_for_load(self, state: str, timeout_ms: int) -> None:
        """Wait for a load state (load, domcontentloaded, networkidle)."""
        page = self._require_page()
        try:
            await page.wait_for_load_state(state, timeout=timeout_ms)
        except PlaywrightError as exc:
            raise BrowserError(
                f"Waiting for '{state}' failed: {exc.message}",
                url=page.url,
                action="wait_for_load_state",
                cause=exc,
            ) from exc

    async def current_location(self) -> str:
        return self._require_page().url

    async def locate(self, query: str) -> List[CandidateAction]:
        """Collect page elements and let the LLM pick the ones matching query."""
        page = self._require_page()
        elements: List[Dict[str, Any]] = await page.evaluate(
            COLLECT_ELEMENTS_SCRIPT, self.settings.max_locate_elements
        )
        if not elements:
            return []

        result = await self.llm.complete(
            PromptTemplates.locate_elements(
                query, json.dumps(elements, ensure_ascii=False)
            ),
            LocateResult,
        )

        candidates = []
        for located in result.candidates:
            if located.element_index >= len(elements):
                self.logger.debug(f"Ignoring out-of-range element {located.element_index}")
                continue
            element = elements[located.element_index]
            candidates.append(
                CandidateAction(
                    method=located.method,
                    xpath=element["xpath"],
                    arguments=located.arguments,
                    description=located.description or element.get("text", ""),
                    element_index=located.element_index,
                )
            )

        self.logger.debug(f"Located {len(candidates)} candidate(s) for {query!r}")
        return candidates

    async def execute(self, candidate: CandidateAction) -> None:
        """Perform a candidate action on its element."""
        page = self._require_page()
        selector = candidate.resolve_selector()
        if not selector:
            raise BrowserError(
                "Candidate action has no selector", action=candidate.method
            )

        locator = page.locator(selector).first
        self.logger.debug(
            "Executing candidate action",
            extra={"selector": selector, "method": candidate.method},
        )
        try:
            await self._perform(page, locator, candidate.method, candidate.arguments)
        except PlaywrightError as exc:
            raise BrowserError(
                f"'{candidate.method}' on {selector} failed: {exc.message}",
                url=page.url,
                selector=selector,
                action=candidate.method,
                cause=exc,
            ) from exc

    async def _perform(
        self, page: Page, locator: Locator, method: str, arguments: List[str]
    ) -> None:
        argument = arguments[0] if arguments else ""

        if method in CLICK_METHODS:
            await locator.click()
        elif method in DBLCLICK_METHODS:
            await locator.dblclick()
        elif method in FILL_METHODS:
            await locator.fill(argument)
        elif method in TYPE_METHODS:
            await locator.press_sequentially(argument)
        elif method in PRESS_METHODS:
            await locator.press(argument or "Enter")
        elif method in SELECT_METHODS:
            await locator.select_option(argument)
        elif method == "hover":
            await locator.hover()
        elif method == "check":
            await locator.check()
        elif method == "uncheck":
            await locator.uncheck()
        elif method in SCROLL_TO_METHODS:
            await locator.scroll_into_view_if_needed()
        elif method in WHEEL_METHODS:
            delta = -self.viewport_height if method == "prevChunk" else self.viewport_height
            await page.mouse.wheel(0, delta)
        elif method in DRAG_METHODS:
            if not argument:
                raise BrowserError("Drag needs a target selector", action=method)
            await locator.drag_to(page.locator(argument).first)
        else:
            raise BrowserError(f"Unsupported method: {method}", action=method)

    async def act(self, instruction: str) -> None:
        """Locate and perform a single instruction."""
        candidates = await self.locate(instruction)
        if not candidates:
            raise ElementNotFoundError(instruction)
        await self.execute(candidates[0])

    async def extract(
        self, query: str, schema: Optional[Type[BaseModel]] = None
    ) -> Any:
        """Extract data from the visible page text with the LLM."""
        page = self._require_page()
        page_text = await page.inner_text("body")
        page_text = page_text[: self.settings.extraction_char_limit]

        return await self.llm.complete(
            PromptTemplates.extract(query, page_text), schema or ExtractionResult
        )

    async def state_probe(self, selector: str, kind: str) -> Union[bool, str]:
        """Query one state of the first element matching selector."""
        locator = self._require_page().locator(selector).first

        if kind == "visible":
            return await locator.is_visible()
        if kind == "hidden":
            return await locator.is_hidden()
        if kind == "enabled":
            return await locator.is_enabled()
        if kind == "disabled":
            return await locator.is_disabled()
        if kind == "checked":
            return await locator.is_checked()
        if kind == "unchecked":
            return not await locator.is_checked()
        if kind == "value":
            return await locator.input_value()
        raise BrowserError(
            f"Unknown state probe '{kind}' (expected one of {', '.join(STATE_KINDS)})",
            selector=selector,
        )

    async def capture_diagnostic_snapshot(self) -> str:
        """Return the ARIA snapshot of the page body."""
        return await self._require_page().locator("body").aria_snapshot()

    async def screenshot(self, path: Path) -> None:
        """
        Save a screenshot to file.

        Args:
            path: Path to save the screenshot
        """
        page = self._require_page()
        self.logger.info("Saving screenshot", extra={"path": str(path)})
        await page.screenshot(path=str(path), type="png", full_page=True)

    async def __aenter__(self) -> "PlaywrightPageAutomation":
        """Async context manager entry."""
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.stop()
