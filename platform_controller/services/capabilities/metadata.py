"""
Annotation, label and finalizer keys shared by the capability controllers.

These keys are a stable contract with the workloads that request
capabilities and with anything selecting the derived resources.
"""

# =============================================================================
# Annotations on watched resources
# =============================================================================

# <prefix><mode> = "true" requests a routing mode, e.g. ".../export-mode-external"
ROUTING_EXPORT_MODE_PREFIX = "routing.opendatahub.io/export-mode-"

# Addresses written back by the routing controller, ";"-separated
ANNOTATION_PUBLIC_ADDRESSES = "routing.opendatahub.io/public-addresses"
ANNOTATION_EXTERNAL_ADDRESSES = "routing.opendatahub.io/external-addresses"
ADDRESS_SEPARATOR = ";"

ANNOTATION_AUTH_ENABLED = "security.opendatahub.io/enable-auth"

# =============================================================================
# Labels on derived resources
# =============================================================================

LABEL_OWNER_NAME = "platform.opendatahub.io/owner-name"
LABEL_OWNER_KIND = "platform.opendatahub.io/owner-kind"
LABEL_OWNER_UID = "platform.opendatahub.io/owner-uid"
LABEL_ROUTING_TYPE = "routing.opendatahub.io/type"

LABEL_APP_NAME = "app.kubernetes.io/name"
LABEL_APP_PART_OF = "app.kubernetes.io/part-of"
LABEL_APP_COMPONENT = "app.kubernetes.io/component"
LABEL_APP_VERSION = "app.kubernetes.io/version"
LABEL_APP_MANAGED_BY = "app.kubernetes.io/managed-by"

# =============================================================================
# Finalizers
# =============================================================================

ROUTING_FINALIZER = "routing.opendatahub.io/finalizer"
