"""
HTML and Word export for Bloger.
"""
import os
import re
import html
import logging
from typing import Dict, Optional

import mistune

from bloger.core.article import Article
from bloger.formatters.markdown import MarkdownFormatter

# Configure logging
logger = logging.getLogger(__name__)

DEFAULT_CSS = """
        body {
            font-family: -apple-system, BlinkMacSystemFont, "Segoe UI", Roboto, Helvetica, Arial, sans-serif;
            max-width: 800px;
            margin: 0 auto;
            padding: 20px;
            line-height: 1.6;
            color: #333;
        }
        img { max-width: 100%; height: auto; display: block; margin: 10px auto; }
        blockquote { border-left: 4px solid #4f46e5; margin: 20px 0; padding: 10px 20px; background-color: #f8f9fa; }
        table { border-collapse: collapse; }
        td, th { border: 1px solid #e9ecef; padding: 4px 12px; }
"""

WORD_CSS = """
        body { font-family: 'Calibri', 'Arial', sans-serif; font-size: 11pt; line-height: 1.5; color: #000000; }
        h1 { font-size: 24pt; font-weight: bold; margin-bottom: 20px; color: #1a1a1a; }
        h2 { font-size: 18pt; font-weight: bold; margin-top: 15px; margin-bottom: 10px; color: #2d3748; }
        h3 { font-size: 14pt; font-weight: bold; margin-top: 10px; color: #4a5568; }
        p { margin-bottom: 10px; }
        img { max-width: 100%; height: auto; display: block; margin: 10px auto; }
"""

WORD_NAMESPACES = (
    "xmlns:o='urn:schemas-microsoft-com:office:office' "
    "xmlns:w='urn:schemas-microsoft-com:office:word' "
    "xmlns='http://www.w3.org/TR/REC-html40'"
)


def export_filename(title: str, extension: str, max_length: int = 30) -> str:
    """
    Derive a download file name from an article title.

    Whitespace runs become underscores and the stem is truncated.
    """
    stem = re.sub(r'\s+', '_', title.strip())
    stem = re.sub(r'[\\/:*?"<>|]', '', stem)[:max_length] or "article"
    return f"{stem}.{extension}"


class HtmlConverter:
    """
    Converts Markdown articles to standalone HTML documents.
    """
    def __init__(self, formatter: Optional[MarkdownFormatter] = None):
        self.formatter = formatter or MarkdownFormatter()
        self.md_parser = mistune.create_markdown(escape=True, plugins=['table'])

    def convert_markdown(self, md_text: str, title: str, word: bool = False) -> str:
        """
        Wrap rendered Markdown in an HTML document.

        Args:
            md_text: Markdown source
            title: Document title
            word: Emit the Office HTML flavour Word opens as a .doc

        Returns:
            HTML text
        """
        body = self.md_parser(md_text)
        safe_title = html.escape(title)

        if word:
            return (
                f"<html {WORD_NAMESPACES}>\n"
                f"<head><meta charset='utf-8'><title>{safe_title}</title>"
                f"<style>{WORD_CSS}</style></head><body>\n{body}</body></html>\n"
            )

        return f"""<!DOCTYPE html>
<html>
<head>
    <meta charset="UTF-8">
    <meta name="generator" content="Bloger">
    <title>{safe_title}</title>
    <style>{DEFAULT_CSS}</style>
</head>
<body>
{body}
</body>
</html>
"""

    def export_article(self, article: Article, category: str, logo: Optional[str],
                       output_dir: str) -> Dict[str, str]:
        """
        Write Markdown, HTML and Word versions of an article.

        Args:
            article: The finished article
            category: Category label
            logo: Optional logo data URI
            output_dir: Directory to write into

        Returns:
            Dict mapping format names to written file paths
        """
        os.makedirs(output_dir, exist_ok=True)
        md_text = self.formatter.format_article(article, category, logo)

        outputs = {
            "markdown": (export_filename(article.title, "md"), md_text),
            "html": (export_filename(article.title, "html"),
                     self.convert_markdown(md_text, article.title)),
            "word": (export_filename(article.title, "doc"),
                     self.convert_markdown(md_text, article.title, word=True)),
        }

        paths = {}
        for name, (filename, content) in outputs.items():
            path = os.path.join(output_dir, filename)
            with open(path, "w", encoding="utf-8") as f:
                f.write(content)
            paths[name] = path

        logger.info(f"Exported '{article.title}' to {output_dir}")
        return paths
