"""
Mutators that apply to any kind or to the simple kinds (secrets, image streams,
disruption budgets, dashboards) managed by the operator
"""

# Standard
import base64

# Third Party
from deepdiff import DeepDiff

# First Party
import alog

# Local
from ..managed_object import object_info
from ..utils import find_by_name, merge_string_map, nested_get

log = alog.use_channel("MUTTR")


def create_only_mutator(desired: dict, existing: dict) -> bool:
    """Never change an object once it exists"""
    return False


def defaults_only_secret_mutator(desired: dict, existing: dict) -> bool:
    """Add keys of the desired secret that are missing from the existing
    secret. Existing values are never overwritten since they may hold
    generated or user provided credentials.
    """
    changed = False
    existing_data = existing.get("data") or {}
    for key, val in (desired.get("data") or {}).items():
        if key not in existing_data:
            existing_data[key] = val
            changed = True

    # stringData is write-only in the cluster, so compare it against data
    for key, val in (desired.get("stringData") or {}).items():
        if key not in existing_data:
            existing_data[key] = base64.b64encode(val.encode("utf-8")).decode("utf-8")
            changed = True

    if changed:
        log.debug("%s secret defaults added", object_info(desired))
        existing["data"] = existing_data
    return changed


def image_stream_mutator(desired: dict, existing: dict) -> bool:
    """Converge every desired tag of an image stream, matched by tag name.
    Missing tags are added; for present tags the source reference and the
    import policy are converged. Tags that only exist in the cluster are left
    alone.
    """
    changed = False
    existing_tags = existing.setdefault("spec", {}).setdefault("tags", [])
    for desired_tag in nested_get(desired, "spec.tags") or []:
        idx = find_by_name(existing_tags, desired_tag.get("name"))
        if idx < 0:
            log.debug(
                "%s adding tag [%s]", object_info(desired), desired_tag.get("name")
            )
            existing_tags.append(desired_tag)
            changed = True
            continue

        existing_tag = existing_tags[idx]
        for field in ("from", "importPolicy"):
            if existing_tag.get(field) != desired_tag.get(field):
                log.debug(
                    "%s tag [%s] %s changed: %s",
                    object_info(desired),
                    desired_tag.get("name"),
                    field,
                    DeepDiff(existing_tag.get(field), desired_tag.get(field)),
                )
                existing_tag[field] = desired_tag.get(field)
                changed = True
    return changed


def pod_disruption_budget_mutator(desired: dict, existing: dict) -> bool:
    """Converge the selector and the availability bounds of a disruption
    budget
    """
    changed = False
    desired_spec = desired.get("spec") or {}
    existing_spec = existing.setdefault("spec", {})
    for field in ("selector", "maxUnavailable", "minAvailable"):
        if existing_spec.get(field) != desired_spec.get(field):
            log.debug(
                "%s spec.%s has changed: %s",
                object_info(desired),
                field,
                DeepDiff(existing_spec.get(field), desired_spec.get(field)),
            )
            if field in desired_spec:
                existing_spec[field] = desired_spec[field]
            else:
                existing_spec.pop(field, None)
            changed = True
    return changed


def labels_mutator(desired: dict, existing: dict) -> bool:
    """Merge the desired labels into the existing labels. Labels added by
    other actors are kept.
    """
    existing_labels = existing.setdefault("metadata", {}).setdefault("labels", {})
    changed = merge_string_map(existing_labels, nested_get(desired, "metadata.labels"))
    if changed:
        log.debug("%s labels changed", object_info(desired))
    return changed


def grafana_dashboard_mutator(desired: dict, existing: dict) -> bool:
    """Converge the whole spec of a dashboard and merge its labels"""
    changed = labels_mutator(desired, existing)
    if existing.get("spec") != desired.get("spec"):
        log.debug("%s dashboard spec has changed", object_info(desired))
        existing["spec"] = desired.get("spec")
        changed = True
    return changed
