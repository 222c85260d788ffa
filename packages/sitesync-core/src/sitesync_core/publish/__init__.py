"""Publish protocol: mutation models and plan builders."""

from sitesync_core.publish.models import (
    AddResource,
    Create,
    DeleteResource,
    Mutation,
    PartialMetadataSkip,
    PublishPlan,
    UpdateResource,
)
from sitesync_core.publish.planner import (
    build_create_plan,
    build_populate_plan,
    build_update_plan,
)

__all__ = [
    "AddResource",
    "Create",
    "DeleteResource",
    "Mutation",
    "PartialMetadataSkip",
    "PublishPlan",
    "UpdateResource",
    "build_create_plan",
    "build_populate_plan",
    "build_update_plan",
]
