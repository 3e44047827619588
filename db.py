"""Supabase client and the TestHall services built on it. Client is cached via Streamlit."""
import logging
import os
from typing import Optional

import streamlit as st
from dotenv import load_dotenv
from supabase import create_client, Client

from testhall.catalog import TestCatalog
from testhall.database import DatabaseClient
from testhall.local_store import LocalStore

load_dotenv()

logger = logging.getLogger(__name__)


def _env_client() -> Client:
    url = os.environ.get("SUPABASE_URL")
    key = os.environ.get("SUPABASE_KEY")
    if not url or not key:
        raise ValueError("SUPABASE_URL and SUPABASE_KEY must be set")
    return create_client(url, key)


@st.cache_resource
def get_supabase() -> Client:
    return _env_client()


def get_supabase_uncached() -> Client:
    """For CLI/scripts (no Streamlit context)."""
    return _env_client()


@st.cache_resource
def get_database() -> Optional[DatabaseClient]:
    """None when Supabase is not configured; the app then runs on local data."""
    try:
        return DatabaseClient(get_supabase())
    except ValueError as e:
        logger.warning(f"Running without Supabase: {e}")
        return None


def get_store() -> LocalStore:
    return LocalStore()


def get_catalog() -> TestCatalog:
    return TestCatalog(get_database(), get_store())


def default_user_id() -> str:
    return os.environ.get("TESTHALL_USER_ID", "")
