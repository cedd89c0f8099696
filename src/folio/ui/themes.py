"""Textual CSS themes for folio."""

APP_CSS = """
/* ── Global ────────────────────────────────── */
Screen {
    background: $surface;
    overflow: hidden;
}

/* ── Reader Screen ─────────────────────────── */
#page {
    width: 100%;
    height: 1fr;
    overflow: hidden;
    color: $text;
}
"""
