"""
Heartbeat Service: scheduled housekeeping using APScheduler.

Runs periodic tasks for the procurement agent:
- Idle session eviction
- Credential cooldown check (re-enables exhausted keys after the cooldown)
"""

import logging
from datetime import timedelta
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from procurement_agent.agent.context import AgentContext

logger = logging.getLogger(__name__)

# Global scheduler
_scheduler: Optional[AsyncIOScheduler] = None


def init_heartbeat(context: AgentContext) -> AsyncIOScheduler:
    """Start the heartbeat scheduler for a process-wide agent context."""
    global _scheduler
    if _scheduler is not None:
        return _scheduler

    _scheduler = AsyncIOScheduler(timezone="UTC")

    # Job 1: Idle sessions - every 30 minutes
    _scheduler.add_job(
        evict_sessions,
        IntervalTrigger(minutes=30),
        args=[context],
        id="evict_sessions",
        name="Idle Session Eviction",
    )

    # Job 2: Credential cooldown - hourly
    if context.credentials is not None:
        _scheduler.add_job(
            check_credential_cooldown,
            IntervalTrigger(hours=1),
            args=[context],
            id="credential_cooldown",
            name="Credential Cooldown Check",
        )

    _scheduler.start()
    logger.info(f"Heartbeat scheduler started with {len(_scheduler.get_jobs())} jobs")
    return _scheduler


def stop_heartbeat():
    """Stop the heartbeat scheduler."""
    global _scheduler
    if _scheduler:
        _scheduler.shutdown(wait=False)
        _scheduler = None
        logger.info("Heartbeat scheduler stopped")


async def evict_sessions(context: AgentContext) -> list[str]:
    """Drop sessions idle for longer than the configured TTL."""
    max_age = timedelta(hours=context.config.session_ttl_hours)
    try:
        return context.sessions.evict_idle(max_age)
    except Exception as e:
        logger.error(f"Session eviction failed: {e}")
        return []


async def check_credential_cooldown(context: AgentContext) -> bool:
    """Reset the credential pool if every key is exhausted and the cooldown passed."""
    if context.credentials is None:
        return False
    try:
        reset = context.credentials.check_cooldown()
    except Exception as e:
        logger.error(f"Credential cooldown check failed: {e}")
        return False
    if reset:
        logger.info("Credential pool reset after cooldown")
    return reset
