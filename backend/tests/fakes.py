"""
Test doubles for external services.

WHY: DynamoDB table creation is asynchronous and racy; the fake backend
lets tests script exactly how many polls a table stays CREATING and
whether a concurrent creator got there first.
"""

from typing import Dict, List, Optional

from wickops.services.tenant_storage import ResourceState, TableLayout


async def no_sleep(_seconds: float) -> None:
    return None


class RecordingSleep:
    """Sleep replacement recording requested delays."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


class FakeStorageBackend:
    """
    In-memory TenantStorageBackend.

    Args:
        polls_until_active: Number of describe calls a freshly created table
            reports CREATING before turning ACTIVE (None means never)
    """

    def __init__(self, polls_until_active: Optional[int] = 1):
        self.polls_until_active = polls_until_active
        self.states: Dict[str, ResourceState] = {}
        self._remaining: Dict[str, int] = {}
        self.created: List[str] = []
        self.layouts: Dict[str, TableLayout] = {}
        self.describe_calls = 0

    def preset(self, name: str, state: ResourceState, polls_until_active: Optional[int] = None) -> None:
        """Put a table in a state, as if another invocation created it."""
        self.states[name] = state
        if polls_until_active is not None:
            self._remaining[name] = polls_until_active

    async def describe(self, name: str) -> ResourceState:
        self.describe_calls += 1
        state = self.states.get(name, ResourceState.MISSING)
        if state == ResourceState.CREATING:
            remaining = self._remaining.get(name)
            if remaining is not None:
                if remaining <= 0:
                    self.states[name] = ResourceState.ACTIVE
                    return ResourceState.ACTIVE
                self._remaining[name] = remaining - 1
        return state

    async def create(self, name: str, layout: TableLayout) -> None:
        self.created.append(name)
        self.layouts[name] = layout
        if name in self.states:
            # ResourceInUseException on the real backend; tolerated
            return
        self.states[name] = ResourceState.CREATING
        if self.polls_until_active is not None:
            self._remaining[name] = self.polls_until_active
