"""Text formatting for report lines, ages and summaries.

The report line format is a contract: users match their own regexes against
it in the ``while`` and ``waitfor`` commands.
"""

from datetime import datetime, timezone

_ESCAPES = {
    "\a": r"\a",
    "\b": r"\b",
    "\f": r"\f",
    "\n": r"\n",
    "\r": r"\r",
    "\t": r"\t",
    "\v": r"\v",
    "\\": "\\\\",
    '"': '\\"',
}


def quote(text: str) -> str:
    """Return text as a double-quoted string with escapes.

    Quotes, backslashes and control characters are escaped; printable
    unicode is kept as is.

    Args:
        text: The raw text.

    Returns:
        The quoted text.

    """
    parts: list[str] = []
    for char in text:
        if char in _ESCAPES:
            parts.append(_ESCAPES[char])
        elif char.isprintable():
            parts.append(char)
        else:
            code = ord(char)
            if code < 0x80:
                parts.append(f"\\x{code:02x}")
            elif code <= 0xFFFF:
                parts.append(f"\\u{code:04x}")
            else:
                parts.append(f"\\U{code:08x}")
    return '"' + "".join(parts) + '"'


def format_condition_line(resource: str, c_type: str, status: str, reason: str, message: str) -> str:
    """Format the identity-free part of a condition, used by ignore-line regexes."""
    return f"{resource} {c_type}={status} {reason} {quote(message)}"


def format_report_line(
    namespace: str,
    resource: str,
    name: str,
    c_type: str,
    status: str,
    reason: str,
    message: str,
    age: str,
) -> str:
    """Format one reported condition.

    Returns:
        A line like '  ns pods web-0 Condition Ready=False CrashLoop "boom" (5m3s)'.

    """
    return f"  {namespace} {resource} {name} Condition {c_type}={status} {reason} {quote(message)} ({age})"


def format_duration(seconds: float) -> str:
    """Format a duration rounded to whole seconds, e.g. '1h2m3s', '5m21s', '7s'."""
    total = int(round(seconds))
    sign = ""
    if total < 0:
        sign = "-"
        total = -total
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    if hours:
        return f"{sign}{hours}h{minutes}m{secs}s"
    if minutes:
        return f"{sign}{minutes}m{secs}s"
    return f"{sign}{secs}s"


def format_elapsed(seconds: float) -> str:
    """Format a duration rounded to milliseconds, e.g. '190ms', '2.5s', '1m3.25s'."""
    millis = int(round(seconds * 1000))
    if millis == 0:
        return "0s"
    if millis < 1000:
        return f"{millis}ms"
    hours, rest = divmod(millis, 3_600_000)
    minutes, rest = divmod(rest, 60_000)
    secs = f"{rest / 1000:.3f}".rstrip("0").rstrip(".")
    if hours:
        return f"{hours}h{minutes}m{secs}s"
    if minutes:
        return f"{minutes}m{secs}s"
    return f"{secs}s"


def format_age(since: datetime | None, now: datetime | None = None) -> str:
    """Format the time elapsed since a transition, or '' if unknown."""
    if since is None:
        return ""
    if since.tzinfo is None:
        since = since.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    return format_duration((now - since).total_seconds())


def format_summary(conditions: int, objects: int, resource_types: int, elapsed: float) -> str:
    """Format the per-cycle summary line."""
    return (
        f"Checked {conditions} conditions of {objects} resources of {resource_types} types. "
        f"Duration: {format_elapsed(elapsed)}"
    )
