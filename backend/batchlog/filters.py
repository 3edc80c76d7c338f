"""Client-side log filter predicate.

The level check runs first and short-circuits; the keyword then has to match
at least one of message, logger name or exception stack. Time window and
execution/job scoping are applied by the server when the stream is opened.
"""

from collections.abc import Iterable, Iterator

from batchlog.schemas import FilterCriteria, LogEntry


def matches(entry: LogEntry, criteria: FilterCriteria | str | None) -> bool:
    if not isinstance(criteria, FilterCriteria):
        criteria = FilterCriteria.decode(criteria)

    if criteria.restricts_level and entry.log_level != criteria.log_level:
        return False

    if criteria.keyword:
        keyword = criteria.keyword.lower()
        return (
            keyword in entry.message.lower()
            or keyword in entry.logger_name.lower()
            or (entry.exception_stack is not None and keyword in entry.exception_stack.lower())
        )

    return True


def apply(entries: Iterable[LogEntry], criteria: FilterCriteria | str | None) -> Iterator[LogEntry]:
    """Yield the entries accepted by *criteria*."""
    if not isinstance(criteria, FilterCriteria):
        criteria = FilterCriteria.decode(criteria)
    return (entry for entry in entries if matches(entry, criteria))
