"""User-facing notifications: a Streamlit toast inside the app, a log line everywhere."""
import logging

import streamlit as st
from streamlit import runtime

logger = logging.getLogger(__name__)

_ICONS = {"error": "🚫", "warning": "⚠️", "success": "✅", "info": "ℹ️"}
_LEVELS = {"error": logging.ERROR, "warning": logging.WARNING, "success": logging.INFO, "info": logging.INFO}

# Messages that should only be shown once per process (e.g. missing-table setup hint)
_shown_once = set()


def notify(level: str, message: str, once: bool = False):
    if once:
        if message in _shown_once:
            return
        _shown_once.add(message)
    logger.log(_LEVELS.get(level, logging.INFO), message)
    if runtime.exists():
        st.toast(message, icon=_ICONS.get(level))


def error(message: str, once: bool = False):
    notify("error", message, once=once)


def warning(message: str, once: bool = False):
    notify("warning", message, once=once)


def success(message: str):
    notify("success", message)
