"""HTML templates for the application."""

from leadcert.templates.lookup_page import format_date
from leadcert.templates.lookup_page import render_lookup_page

__all__ = [
    "format_date",
    "render_lookup_page",
]
