"""Constants for the REST Dynamic Operator."""

# API Group for the operator's own resources
API_GROUP = "dynamic.controller.dev"
API_VERSION = "v1alpha1"
API_GROUP_VERSION = f"{API_GROUP}/{API_VERSION}"

# Definition resources describing managed kinds
DEFINITION_PLURAL = "definitions"

# Authentication resources live in the managed resource's group
AUTH_VERSION = "v1alpha1"
AUTH_REFS_FIELD = "authenticationRefs"
AUTH_TYPE_BASIC = "basic"
AUTH_TYPE_BEARER = "bearer"

# Annotations
ANNOTATION_VERBOSE = f"{API_GROUP}/verbose"
ANNOTATION_LAST_APPLIED = "kubectl.kubernetes.io/last-applied-configuration"

# Finalizers
FINALIZER = f"{API_GROUP}/finalizer"

# Controller identity
CONTROLLER_NAME = "rest-dynamic-operator"
FIELD_MANAGER = "rest-dynamic-operator"

# Condition Types
COND_READY = "Ready"

# Condition Reasons
REASON_AVAILABLE = "Available"
REASON_UNAVAILABLE = "Unavailable"
REASON_CREATING = "Creating"
REASON_DELETING = "Deleting"

# Event Reasons
EVENT_REASON_RECONCILE_STARTED = "ReconcileStarted"
EVENT_REASON_RECONCILE_FAILED = "ReconcileFailed"
EVENT_REASON_CREATED = "ExternalResourceCreated"
EVENT_REASON_UPDATED = "ExternalResourceUpdated"
EVENT_REASON_DELETED = "ExternalResourceDeleted"
EVENT_REASON_DRIFT_DETECTED = "DriftDetected"

# Controller defaults
DEFAULT_WORKERS = 1
DEFAULT_MAX_RETRIES = 5
DEFAULT_RESYNC_INTERVAL = 180.0
DEFAULT_CREATE_DELAY = 3.0
DEFAULT_REQUEST_TIMEOUT = 30.0
DEFAULT_DESCRIPTION_CACHE_TTL = 30.0

# Queue retry policy
RETRY_BASE_DELAY = 3.0
RETRY_MAX_DELAY = 180.0
RETRY_BUCKET_QPS = 10.0
RETRY_BUCKET_BURST = 100
