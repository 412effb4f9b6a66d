"""
Exception classes for the balancer core.

All failures are local to one optimization run and none are retried
internally. A caller that wants to retry builds a fresh request from the
latest known assignment.

- BalancerError: Base class for everything raised by the balancer
- DuplicateAssignmentError: A region is assigned to more than one server
- InvalidAssignmentError: The assignment cannot be modelled (no servers, unknown server)
- InvalidActionError: An action does not match the snapshot state
- BalancerBusyError: A run is active or a previous plan is still being executed
- ConfigError: A configuration file could not be read or parsed

Per project patterns:
- Store context data in attributes for error handling
- Include descriptive message with relevant details
"""

from balancer_protocols import RegionInfo, ServerName


class BalancerError(Exception):
    """Base exception for all balancer errors."""


class DuplicateAssignmentError(BalancerError):
    """
    Raised when the input assignment lists a region more than once.

    This is a caller error: the master's assignment view must place every
    region on exactly one server.

    Attributes:
        region: The region listed twice
        first_server: Server the region was first seen on
        second_server: Server the region was seen on again
    """

    def __init__(self, region: RegionInfo, first_server: ServerName, second_server: ServerName) -> None:
        self.region = region
        self.first_server = first_server
        self.second_server = second_server
        if first_server == second_server:
            where = f"twice under {first_server}"
        else:
            where = f"under both {first_server} and {second_server}"
        super().__init__(f"Region {region.region_name} ({region.encoded_name}) is assigned {where}")


class InvalidAssignmentError(BalancerError):
    """
    Raised when an assignment cannot be turned into a cluster snapshot.

    Attributes:
        reason: Why the assignment was rejected
    """

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Invalid assignment: {reason}")


class InvalidActionError(BalancerError):
    """
    Raised when an action cannot be applied to or undone on a snapshot.

    Indicates a programming error in a generator or in the caller of
    apply_action/undo_last_action.

    Attributes:
        action: The offending action (None when undoing with no history)
        reason: What did not match
    """

    def __init__(self, action: object | None, reason: str) -> None:
        self.action = action
        self.reason = reason
        if action is None:
            super().__init__(reason)
        else:
            super().__init__(f"Cannot apply {action!r}: {reason}")


class BalancerBusyError(BalancerError):
    """
    Raised when a balancing run is requested while the balancer is busy.

    A new run must not start while another one is searching, nor while the
    plan of the previous run is still being executed, otherwise the new plan
    would be computed against a stale assignment.

    Attributes:
        reason: "running" or "plan_in_flight"
    """

    def __init__(self, reason: str) -> None:
        self.reason = reason
        if reason == "plan_in_flight":
            detail = "the previous plan has not been reported as completed"
        else:
            detail = "another balancing run is in progress"
        super().__init__(f"Balancer is busy: {detail}")


class ConfigError(BalancerError):
    """
    Raised when a configuration or cluster-state file cannot be loaded.

    Attributes:
        path: The file that failed to load
    """

    def __init__(self, path: object, message: str) -> None:
        self.path = path
        super().__init__(f"{path}: {message}")
