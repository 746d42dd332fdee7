from typing import Iterable, Tuple

from .models import Finding, Priority


def aggregate(findings: Iterable[Finding]) -> Tuple[Priority, bool]:
    """Reduce findings to the highest severity and the optimized verdict."""
    priority = Priority.NA
    for finding in findings:
        if finding.severity.rank > priority.rank:
            priority = finding.severity
    return priority, priority == Priority.NA
