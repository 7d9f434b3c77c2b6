"""Decide whether a project needs the multi-source upgrade, and for which source."""

from dataclasses import dataclass, field

from .constants import DEFAULT_SOURCE_NAME, ProjectSchemaVersion
from .errors import NoSourcesFoundError, PreconditionError


@dataclass
class GateDecision:
    """Outcome of evaluate_upgrade.

    Attributes:
        upgrade_required: False when the project is already at the target version
        target_source: Source picked without asking, if unambiguous
        needs_disambiguation: True when someone has to choose among candidates
        candidates: Connected source names to choose from
    """

    upgrade_required: bool
    target_source: str | None = None
    needs_disambiguation: bool = False
    candidates: list[str] = field(default_factory=list)


def evaluate_upgrade(
    current_version: ProjectSchemaVersion,
    sources: list[str],
    has_metadata_v3: bool,
    target_version: ProjectSchemaVersion = ProjectSchemaVersion.V3,
) -> GateDecision:
    """
    Decide whether an upgrade is needed and which source it targets.

    Args:
        current_version: Config version of the project
        sources: Data source names connected to the server
        has_metadata_v3: Whether the server supports the multi-source metadata model
        target_version: Version the project should end up at

    Returns:
        GateDecision describing what to do next

    Raises:
        PreconditionError: If the server cannot host the target layout
        NoSourcesFoundError: If the server has no connected sources
    """
    if not has_metadata_v3:
        raise PreconditionError(
            f"config v{int(target_version)} is only supported on servers with metadata version >= 3"
        )

    if current_version >= target_version:
        return GateDecision(upgrade_required=False)

    if not sources:
        raise NoSourcesFoundError(
            "cannot determine which database the current migrations and seeds belong to: "
            "found 0 connected databases on the server"
        )

    if len(sources) == 1 and sources[0] == DEFAULT_SOURCE_NAME:
        return GateDecision(
            upgrade_required=True, target_source=DEFAULT_SOURCE_NAME, candidates=list(sources)
        )

    return GateDecision(upgrade_required=True, needs_disambiguation=True, candidates=list(sources))


def check_update_required(
    current_version: ProjectSchemaVersion,
    sources: list[str],
    has_metadata_v3: bool,
) -> str | None:
    """
    Explain why a project must be upgraded before it can be used.

    A v2 project talking to a single "default" source keeps working, so only
    multi-source or renamed-source setups require the v3 layout.

    Returns:
        Human-readable reason, or None if the project is fine as it is
    """
    if not has_metadata_v3:
        return None

    if current_version <= ProjectSchemaVersion.V1:
        return "config v1 is deprecated; upgrade the project to config v2 first"

    if current_version < ProjectSchemaVersion.V3:
        if not sources:
            return "no connected databases found on the server"
        if len(sources) != 1 or sources[0] != DEFAULT_SOURCE_NAME:
            return (
                "the server has multiple or non-default databases, "
                "which requires the config v3 project layout"
            )

    return None
