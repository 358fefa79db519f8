"""
Background Jobs for Policy Desk.

This module contains scheduled and background jobs:
- subscription_cron: Daily expiry of lapsed trials and subscriptions
"""

from .subscription_cron import run_subscription_job

__all__ = ["run_subscription_job"]
