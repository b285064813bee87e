"""MCP Server - Tool definitions for Claude integration.

Defines the MCP tools for the pregnancy journal: gestation progress and the
agenda. The owner is taken from the request context set by the auth middleware.
"""

import logging
from contextvars import ContextVar

from mcp.server.fastmcp import FastMCP
from mcp.server.transport_security import TransportSecuritySettings

from .journal_service import JournalService


logger = logging.getLogger(__name__)

# Owner id for the request being handled
current_owner_id: ContextVar[str | None] = ContextVar("current_owner_id", default=None)

INSTRUCTIONS = """Materna - Pregnancy journal assistant.

Use these tools to follow the pregnancy week by week and to keep the agenda
of appointments, exams and reminders.

If get_gestation reports that nothing is configured, ask for the first day of
the last menstrual period and call set_last_period_date.
Dates are always YYYY-MM-DD and times HH:MM, with no timezone."""


def get_owner_id() -> str:
    """Get current authenticated owner ID.

    Raises:
        RuntimeError: If no owner is authenticated
    """
    owner_id = current_owner_id.get()
    if owner_id is None:
        raise RuntimeError("No authenticated owner. Ensure API key is provided.")
    return owner_id


def build_mcp(service: JournalService, allowed_hosts: list[str] | None = None) -> FastMCP:
    """Create the FastMCP server with every tool bound to ``service``.

    Args:
        service: Journal service built by the composition root
        allowed_hosts: Host headers accepted by DNS rebinding protection
    """
    transport_security = TransportSecuritySettings(
        enable_dns_rebinding_protection=True,
        allowed_hosts=allowed_hosts or ["localhost:*", "127.0.0.1:*", "*.run.app:*", "*.run.app"],
    )

    mcp = FastMCP(
        "materna",
        instructions=INSTRUCTIONS,
        stateless_http=True,
        transport_security=transport_security,
    )

    # ==================== Gestation Tools ====================

    @mcp.tool()
    def set_last_period_date(date_str: str) -> dict:
        """Save the first day of the last menstrual period.

        Args:
            date_str: Date in YYYY-MM-DD format, not in the future

        Returns:
            The saved date and the updated gestation snapshot
        """
        return service.set_last_period_date(get_owner_id(), date_str)

    @mcp.tool()
    def get_gestation() -> dict:
        """Current gestational week, trimester, due date, days remaining and progress.

        Returns:
            Snapshot dictionary, or {"configured": false} with a setup message
        """
        return service.gestation(get_owner_id())

    @mcp.tool()
    def get_countdown() -> dict:
        """Days, hours and minutes left until the due date.

        Returns:
            Countdown with due date and overdue information
        """
        return service.countdown(get_owner_id())

    # ==================== Agenda Tools ====================

    @mcp.tool()
    def schedule_event(
        title: str,
        date_str: str,
        scheduled_time: str = "09:00",
        category: str = "appointment",
        description: str | None = None,
        repeat: str | None = None,
        repeat_until: str | None = None,
    ) -> dict:
        """Add an event to the agenda, optionally repeating.

        A repeating event is stored as one entry per occurrence.

        Args:
            title: Short label (e.g., "Prenatal visit")
            date_str: Date of the first occurrence, YYYY-MM-DD
            scheduled_time: Time of day, HH:MM
            category: mood, weight, photo, medical, appointment or general
            description: Optional details
            repeat: daily, weekly or monthly (omit for a single event)
            repeat_until: Last allowed date for repeats, YYYY-MM-DD

        Returns:
            Number of entries created and their dates
        """
        return service.schedule_event(
            get_owner_id(),
            title=title,
            date_str=date_str,
            scheduled_time=scheduled_time,
            category=category,
            description=description,
            repeat=repeat,
            repeat_until=repeat_until,
        )

    @mcp.tool()
    def get_upcoming(days: int = 7) -> dict:
        """Agenda entries from today through the next N days.

        Args:
            days: How many days ahead to include (default 7)
        """
        return service.upcoming(get_owner_id(), days)

    @mcp.tool()
    def get_agenda() -> dict:
        """Agenda from the start of this month to the end of the month after next.

        Returns:
            All entries in that window plus the next five upcoming ones
        """
        return service.agenda(get_owner_id())

    @mcp.tool()
    def get_day(date_str: str) -> dict:
        """Agenda entries for one day.

        Args:
            date_str: Date in YYYY-MM-DD format
        """
        return service.day(get_owner_id(), date_str)

    @mcp.tool()
    def toggle_entry(entry_id: str) -> dict:
        """Mark an agenda entry done, or not done if it already was.

        Args:
            entry_id: The ID of the entry
        """
        return service.toggle_entry(get_owner_id(), entry_id)

    @mcp.tool()
    def delete_entry(entry_id: str) -> dict:
        """Remove one agenda entry. Other occurrences of a repeating event are kept.

        Args:
            entry_id: The ID of the entry
        """
        return service.delete_entry(get_owner_id(), entry_id)

    logger.debug("MCP tools registered")
    return mcp
