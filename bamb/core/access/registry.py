"""Process-wide grant registry.

Two phases:

  1. ``submit`` collects every module's ``GrantTable`` (or a factory that
     builds one). Nothing is visible to permission checks yet.
  2. ``open`` merges the submissions and freezes the table. From then on
     ``lookup`` and ``query`` are pure reads with no locking.

Any lookup before ``open`` denies.
"""

import threading
from collections import defaultdict
from typing import Callable, Dict, FrozenSet, Iterable, List, Optional, Union

from bamb.core.access import attributes as attrs
from bamb.core.access.grants import Action, GrantKey, GrantTable
from bamb.core.exceptions import NotFoundError
from bamb.core.logger import get_logger

logger = get_logger(__name__)

TableSource = Union[GrantTable, Callable[[], GrantTable]]


class GrantRegistry:
    """Merged (role, action, resource) -> attributes table."""

    def __init__(self):
        self._lock = threading.Lock()
        self._submissions: Dict[str, List[GrantTable]] = defaultdict(list)
        self._failed: List[str] = []
        self._table: Optional[Dict[GrantKey, FrozenSet[str]]] = None
        self._universe: Dict[str, FrozenSet[str]] = {}

    # ------------------------------------------------------------------
    # Phase 1
    # ------------------------------------------------------------------

    def submit(self, module: str, source: TableSource) -> bool:
        """Collect a module's grants.

        A factory that raises is logged and the module contributes no
        grants. Returns whether the submission was accepted.
        """
        with self._lock:
            if self._table is not None:
                raise RuntimeError(
                    f"Grant registry is already open; module '{module}' submitted too late"
                )

        try:
            table = source() if callable(source) else source
        except Exception:
            logger.exception("Module %s failed to build its grant table; it grants nothing", module)
            with self._lock:
                self._failed.append(module)
            return False

        if table is None:
            logger.debug("Module %s declares no grants", module)
            return True

        if not isinstance(table, GrantTable):
            logger.error(
                "Module %s submitted %s instead of a GrantTable; it grants nothing",
                module, type(table).__name__,
            )
            with self._lock:
                self._failed.append(module)
            return False

        with self._lock:
            self._submissions[module].append(table)
        logger.debug("Collected %d grants from module %s", len(table), module)
        return True

    # ------------------------------------------------------------------
    # Phase 2
    # ------------------------------------------------------------------

    def open(self) -> None:
        """Merge every submission and freeze the table."""
        with self._lock:
            if self._table is not None:
                return

            merged: Dict[GrantKey, FrozenSet[str]] = {}
            universe: Dict[str, FrozenSet[str]] = {}
            for module in sorted(self._submissions):
                for table in self._submissions[module]:
                    for resource, names in table.universe().items():
                        universe[resource] = universe.get(resource, frozenset()) | names
                    for key, granted in table.entries():
                        merged[key] = attrs.union(merged.get(key, attrs.EMPTY), granted)

            self._table = {key: value for key, value in merged.items() if value}
            self._universe = universe
            self._submissions.clear()

        logger.info(
            "Grant registry open: %d grants, %d roles, %d resources%s",
            len(self._table), len(self.roles()), len(self._universe),
            f" (failed modules: {', '.join(self._failed)})" if self._failed else "",
        )

    @property
    def is_open(self) -> bool:
        return self._table is not None

    @property
    def failed_modules(self) -> List[str]:
        return list(self._failed)

    # ------------------------------------------------------------------
    # Permission queries
    # ------------------------------------------------------------------

    def lookup(self, role: str, action: Action, resource: str) -> FrozenSet[str]:
        table = self._table
        if table is None:
            logger.warning(
                "Permission lookup (%s, %s, %s) before the grant registry opened; denying",
                role, Action(action).value, resource,
            )
            return attrs.EMPTY
        return table.get((role, Action(action), resource), attrs.EMPTY)

    def query(self, roles: Iterable[str], action: Action, resource: str) -> FrozenSet[str]:
        """Union of the grants held by any of ``roles``."""
        return attrs.union(*(self.lookup(role, action, resource) for role in set(roles)))

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def _entries(self) -> Dict[GrantKey, FrozenSet[str]]:
        return self._table or {}

    def roles(self) -> List[str]:
        return sorted({role for role, _, _ in self._entries()})

    def resources(self) -> List[str]:
        granted = {resource for _, _, resource in self._entries()}
        return sorted(granted | set(self._universe))

    def has_role(self, role: str) -> bool:
        return any(r == role for r, _, _ in self._entries())

    def has_resource(self, resource: str) -> bool:
        return resource in self.resources()

    def universe(self, resource: str) -> FrozenSet[str]:
        return self._universe.get(resource, frozenset())

    def grants(self) -> Dict[str, Dict[str, Dict[str, List[str]]]]:
        """Nested ``role -> resource -> action -> attributes`` view."""
        result: Dict[str, Dict[str, Dict[str, List[str]]]] = {}
        for (role, action, resource), granted in sorted(
            self._entries().items(), key=lambda item: (item[0][0], item[0][2], item[0][1].value)
        ):
            result.setdefault(role, {}).setdefault(resource, {})[action.value] = attrs.describe(granted)
        return result

    def privileges_for_role(self, role: str) -> Dict[str, Dict[str, List[str]]]:
        grants = self.grants()
        if role not in grants:
            raise NotFoundError(f"Role '{role}' not found", "roleNotFound", {"role": role})
        return grants[role]

    def privileges_for_resource(self, resource: str) -> Dict[str, Dict[str, List[str]]]:
        if not self.has_resource(resource):
            raise NotFoundError(
                f"Resource '{resource}' not found", "resourceNotFound", {"resource": resource}
            )
        result: Dict[str, Dict[str, List[str]]] = {}
        for role, resources in self.grants().items():
            if resource in resources:
                result[role] = resources[resource]
        return dict(sorted(result.items()))

    def search_resources(self, filter_name: str) -> List[str]:
        """Resources whose name contains every whitespace-separated keyword."""
        keywords = [k.lower() for k in filter_name.split()]
        return [
            resource for resource in self.resources()
            if all(keyword in resource.lower() for keyword in keywords)
        ]
