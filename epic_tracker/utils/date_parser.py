"""Date parsing and clock helpers for journey timestamps and commit scans."""

from datetime import datetime, timedelta, timezone

import typer


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """Normalize a datetime to UTC.

    Naive values are taken to already be in UTC.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_date_input(date_str: str) -> datetime:
    """Parse various date formats into datetime objects.

    Supports:
    - ISO 8601: 2024-01-01, 2024-01-01T10:00:00Z, 2024-01-01T10:00:00+02:00
    - Common formats: January 1, 2024, Jan 1 2024

    Args:
        date_str: Date string to parse

    Returns:
        Parsed datetime object. Timezone-aware when the input carries an offset.

    Raises:
        ValueError: If date format is not recognized
    """
    # fromisoformat only accepts a trailing "Z" on Python 3.11+
    iso_candidate = date_str.strip()
    if iso_candidate.endswith("Z"):
        iso_candidate = iso_candidate[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(iso_candidate)
    except ValueError:
        pass

    formats = [
        "%B %d, %Y",  # January 1, 2024
        "%b %d, %Y",  # Jan 1, 2024
        "%B %d %Y",  # January 1 2024
        "%b %d %Y",  # Jan 1 2024
        "%Y/%m/%d",  # 2024/01/01
        "%m/%d/%Y",  # 01/01/2024
    ]

    for fmt in formats:
        try:
            return datetime.strptime(date_str, fmt)
        except ValueError:
            continue

    raise ValueError(
        f"Unable to parse date '{date_str}'. "
        f"Supported formats include: YYYY-MM-DD, YYYY-MM-DDTHH:MM:SSZ, "
        f"'January 1, 2024', 'Jan 1 2024', MM/DD/YYYY"
    )


def parse_timestamp(value: datetime | str) -> datetime:
    """Turn a datetime or date string into a timezone-aware datetime.

    Naive values are interpreted in the local timezone, which is how git
    interprets ``--since`` dates.
    """
    dt = parse_date_input(value) if isinstance(value, str) else value
    if dt.tzinfo is None:
        return dt.astimezone()
    return dt


def relative_date_to_absolute(
    days: int | None = None, weeks: int | None = None
) -> datetime:
    """Convert relative dates to absolute dates.

    Args:
        days: Number of days ago (optional)
        weeks: Number of weeks ago (optional)

    Returns:
        Timezone-aware datetime representing the calculated past date

    Raises:
        ValueError: If both or neither option is given, or a value is invalid
    """
    if days is None and weeks is None:
        raise ValueError("Must provide one of: days or weeks")
    if days is not None and weeks is not None:
        raise ValueError("Cannot combine multiple relative date options")

    if days is not None:
        if days <= 0:
            raise ValueError("Days must be a positive integer")
        return utc_now() - timedelta(days=days)

    if weeks <= 0:
        raise ValueError("Weeks must be a positive integer")
    return utc_now() - timedelta(weeks=weeks)


def validate_since_parameters(
    since: str | None = None,
    last_days: int | None = None,
    last_weeks: int | None = None,
    default: timedelta = timedelta(days=1),
) -> datetime:
    """Resolve the start of a commit scan from CLI options.

    Args:
        since: Absolute start date string
        last_days: Last N days (convenience option)
        last_weeks: Last N weeks (convenience option)
        default: Look-back window used when no option is given

    Returns:
        Timezone-aware start datetime

    Raises:
        ValueError: If parameters are invalid or conflicting
    """
    has_relative = last_days is not None or last_weeks is not None

    if since is not None and has_relative:
        raise ValueError(
            "Cannot combine --since with relative options (--last-days/--last-weeks)"
        )

    if has_relative:
        try:
            return relative_date_to_absolute(days=last_days, weeks=last_weeks)
        except ValueError as e:
            raise ValueError(f"Invalid relative date parameters: {e}")

    if since is None:
        return utc_now() - default

    try:
        start = parse_timestamp(since)
    except ValueError as e:
        raise ValueError(f"Invalid --since date: {e}")

    if start > utc_now():
        typer.echo(
            f"Warning: Start date {start.strftime('%Y-%m-%d')} is in the future",
            err=True,
        )
    return start
