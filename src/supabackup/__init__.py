"""Scheduled backup and restore for Supabase Postgres databases."""

__version__ = "0.1.0"
