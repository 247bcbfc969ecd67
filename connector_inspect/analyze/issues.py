"""
Issue collection with a bounded number of warnings.
"""

import logging
from typing import Any

from connector_inspect.models.ir import EMPTY_LOC, Issue, Loc, Severity

logger = logging.getLogger(__name__)

DEFAULT_MAX_WARNINGS = 10_000


class IssueCollector:
    """
    Accumulates issues in emission order.

    Warning-severity issues beyond ``max_warnings`` are dropped; the first one
    dropped appends a single ``warning_cap_reached`` info issue. Info and error
    issues are always kept.
    """

    def __init__(self, max_warnings: int = DEFAULT_MAX_WARNINGS):
        self.max_warnings = max_warnings
        self._issues: list[Issue] = []
        self._warnings = 0
        self._cap_announced = False

    def add(
        self,
        severity: Severity,
        code: str,
        message: str,
        loc: Loc = EMPTY_LOC,
        context: dict[str, Any] | None = None,
    ) -> bool:
        """
        Record an issue.

        Returns:
            False if the issue was dropped by the warning cap
        """
        if severity is Severity.WARNING:
            if self._warnings >= self.max_warnings:
                if not self._cap_announced:
                    self._cap_announced = True
                    logger.debug(f"warning cap of {self.max_warnings} reached")
                    self._issues.append(
                        Issue(
                            severity=Severity.INFO,
                            code="warning_cap_reached",
                            message=(
                                f"Reached --max-warnings={self.max_warnings}; "
                                "further warnings suppressed"
                            ),
                        )
                    )
                return False
            self._warnings += 1

        self._issues.append(
            Issue(severity=severity, code=code, message=message, loc=loc, context=context or {})
        )
        return True

    def add_issue(self, issue: Issue) -> bool:
        """Record an already-built issue, subject to the same cap."""
        return self.add(issue.severity, issue.code, issue.message, issue.loc, dict(issue.context))

    def info(self, code: str, message: str, loc: Loc = EMPTY_LOC, **context) -> bool:
        return self.add(Severity.INFO, code, message, loc, context)

    def warning(self, code: str, message: str, loc: Loc = EMPTY_LOC, **context) -> bool:
        return self.add(Severity.WARNING, code, message, loc, context)

    def error(self, code: str, message: str, loc: Loc = EMPTY_LOC, **context) -> bool:
        return self.add(Severity.ERROR, code, message, loc, context)

    @property
    def issues(self) -> tuple[Issue, ...]:
        return tuple(self._issues)

    def __len__(self):
        return len(self._issues)
