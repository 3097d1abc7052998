"""Formats per-page text as plain text, Markdown or HTML."""

from typing import List

FORMATS = ("text", "markdown", "html")


class TextFormatter:
    """Renders extracted page texts in one of the export formats."""

    def convert(self, pages: List[str], output_format: str = "text") -> str:
        """
        Join page texts into a single export document.

        Pages are numbered from 1 in Markdown headings and HTML headings.
        Unknown formats are rendered as plain text.
        """
        if output_format == "markdown":
            return "\n\n".join(
                f"## Page {idx + 1}\n\n{text}" for idx, text in enumerate(pages)
            )

        if output_format == "html":
            body = "\n".join(
                f"<h2>Page {idx + 1}</h2><p>{self._escape_html(text)}</p>"
                for idx, text in enumerate(pages)
            )
            return (
                '<!doctype html><html><head><meta charset="utf-8">'
                f"<title>PDF Export</title></head><body>{body}</body></html>"
            )

        return "\n\n".join(pages)

    def _escape_html(self, text: str) -> str:
        """Escape HTML special characters."""
        return (
            text
            .replace("&", "&amp;")
            .replace("<", "&lt;")
            .replace(">", "&gt;")
            .replace('"', "&quot;")
            .replace("'", "&#039;")
        )
