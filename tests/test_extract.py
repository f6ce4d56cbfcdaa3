import unittest
from pathlib import Path
from unittest import mock
import sys

import requests

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "stockdash" / "src"
sys.path.insert(0, str(SRC))

from stockdash import extract

ARTICLE_HTML = """
<html>
<head><title>Acme</title><style>.x { color: red; }</style></head>
<body>
<header>Site header</header>
<nav>Home | Markets</nav>
<div class="content">Sidebar content block</div>
<article>
  <h1>Acme beats estimates</h1>
  <p>Revenue rose   12%
  year over year.</p>
  <script>trackPageView();</script>
</article>
<footer>Copyright</footer>
</body>
</html>
"""


class TestExtractText(unittest.TestCase):
    def test_article_selector_wins_and_chrome_is_stripped(self):
        text = extract.extract_text(ARTICLE_HTML)
        self.assertEqual(text, "Acme beats estimates Revenue rose 12% year over year.")

    def test_falls_through_selector_order(self):
        html_text = """
        <body><main>Main block</main><div class="entry-content">Entry text here</div></body>
        """
        self.assertEqual(extract.extract_text(html_text), "Entry text here")

    def test_body_fallback(self):
        html_text = "<html><body><nav>menu</nav><div><p>Plain page text</p></div></body></html>"
        self.assertEqual(extract.extract_text(html_text), "Plain page text")

    def test_empty_match_falls_back_to_body(self):
        html_text = "<body><article><script>x()</script></article><p>Body words</p></body>"
        self.assertEqual(extract.extract_text(html_text), "Body words")

    def test_empty_input(self):
        self.assertEqual(extract.extract_text(""), "")


class TestFetchArticleText(unittest.TestCase):
    def test_fetch_failure_returns_empty(self):
        with mock.patch.object(extract.requests, "get", side_effect=requests.ConnectionError("offline")):
            self.assertEqual(extract.fetch_article_text("https://example.com/a"), "")

    def test_http_error_returns_empty(self):
        resp = mock.Mock()
        resp.raise_for_status.side_effect = requests.HTTPError("403")
        with mock.patch.object(extract.requests, "get", return_value=resp):
            self.assertEqual(extract.fetch_article_text("https://example.com/a"), "")

    def test_fetch_success(self):
        resp = mock.Mock(text=ARTICLE_HTML)
        resp.raise_for_status.return_value = None
        with mock.patch.object(extract.requests, "get", return_value=resp):
            self.assertTrue(extract.fetch_article_text("https://example.com/a").startswith("Acme beats"))


if __name__ == "__main__":
    unittest.main()
