"""Chat transcript scraper returning the latest assistant message as text."""
import logging
import re
import time

from bs4 import BeautifulSoup
import requests

logger = logging.getLogger(__name__)


class ChatTranscriptScraper:
    """Scraper for chat transcript pages containing a generated plan."""

    ASSISTANT_SELECTOR = '[data-message-author-role="assistant"]'
    FALLBACK_BLOCK_TAGS = ['p', 'li', 'div']
    FALLBACK_BLOCK_LIMIT = 80
    LINE_BREAK_TAGS = [
        'p', 'li', 'div', 'br', 'tr', 'pre', 'blockquote',
        'h1', 'h2', 'h3', 'h4', 'h5', 'h6',
    ]

    def __init__(self, timeout: int = 30):
        """
        Initialize the transcript scraper.

        Args:
            timeout: HTTP request timeout in seconds (default: 30)
        """
        self.timeout = timeout

    def fetch_text(self, url: str) -> str:
        """
        Fetch a transcript page and extract the plan text.

        Args:
            url: Address of the transcript page

        Returns:
            Extracted text, or an empty string if the page could not be
            fetched or holds no usable text
        """
        logger.info(f"Fetching chat transcript from {url}")

        try:
            html_content = self._fetch_html(url)
        except requests.RequestException as e:
            logger.error(f"Could not fetch chat transcript: {e}")
            return ""

        return self.extract_text(html_content)

    def _fetch_html(self, url: str) -> str:
        """
        Fetch page HTML with retry logic.

        Raises:
            requests.RequestException: If all retry attempts fail
        """
        max_retries = 3
        base_delay = 1  # seconds

        for attempt in range(max_retries):
            try:
                logger.info(f"Fetching transcript HTML (attempt {attempt + 1}/{max_retries})")
                response = requests.get(url, timeout=self.timeout)
                response.raise_for_status()
                return response.text

            except requests.RequestException as e:
                if attempt < max_retries - 1:
                    delay = base_delay * (2 ** attempt)
                    logger.warning(
                        f"Request failed (attempt {attempt + 1}/{max_retries}): {e}. "
                        f"Retrying in {delay} seconds..."
                    )
                    time.sleep(delay)
                else:
                    logger.error(
                        f"All {max_retries} retry attempts failed. Last error: {e}"
                    )
                    raise

    def extract_text(self, html_content: str) -> str:
        """
        Extract the last assistant message from transcript HTML.

        Tries the assistant-role nodes first; otherwise joins the last text
        blocks inside <main>.

        Args:
            html_content: Transcript page HTML

        Returns:
            Extracted text, or an empty string if nothing was found
        """
        soup = BeautifulSoup(html_content or "", 'html.parser')
        self._mark_line_breaks(soup)

        assistant_nodes = soup.select(self.ASSISTANT_SELECTOR)
        if assistant_nodes:
            text = self._node_text(assistant_nodes[-1])
            logger.info(f"Extracted assistant text: {text[:200]!r}")
            return text

        logger.warning("No assistant message nodes found. Using fallback.")

        main = soup.find('main')
        if main is None:
            logger.warning("No <main> element found.")
            return ""

        blocks = main.find_all(self.FALLBACK_BLOCK_TAGS)
        if not blocks:
            logger.warning("No text blocks found in <main>.")
            return ""

        tail_blocks = blocks[-self.FALLBACK_BLOCK_LIMIT:]
        text = "\n".join(self._node_text(block) for block in tail_blocks).strip()

        logger.info(f"Extracted fallback text from <main>: {text[:200]!r}")
        return text

    def _mark_line_breaks(self, soup: BeautifulSoup) -> None:
        # Block elements render on their own line; keep that in get_text()
        for tag in soup.find_all(self.LINE_BREAK_TAGS):
            if tag.name == 'br':
                tag.replace_with("\n")
            else:
                tag.append("\n")

    def _node_text(self, node) -> str:
        lines = []
        for line in node.get_text().split("\n"):
            line = re.sub(r"[ \t\xa0]+", " ", line).strip()
            if line:
                lines.append(line)
        return "\n".join(lines)
