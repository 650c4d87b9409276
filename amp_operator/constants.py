"""
Shared module to hold constant values for the library
"""

# Log config annotations
LOG_DEFAULT_LEVEL_NAME = "apps.3scale.net/log-default-level"
LOG_FILTERS_NAME = "apps.3scale.net/log-filters"
LOG_THREAD_ID_NAME = "apps.3scale.net/log-thread-id"
LOG_JSON_NAME = "apps.3scale.net/log-json"

# Delimiter used for nested dict keys
NESTED_DICT_DELIM = "."

# API groups of the custom resources reconciled by this operator
APPS_API_VERSION = "apps.3scale.net/v1alpha1"
CAPABILITIES_API_VERSION = "capabilities.3scale.net/v1beta1"

# Kinds of the custom resources reconciled by this operator
APIMANAGER_KIND = "APIManager"
DEVELOPER_USER_KIND = "DeveloperUser"
DEVELOPER_ACCOUNT_KIND = "DeveloperAccount"

# Kind and trigger type names used by the workload mutators
DEPLOYMENT_CONFIG_KIND = "DeploymentConfig"
IMAGE_CHANGE_TRIGGER_TYPE = "ImageChange"

# Event types understood by the cluster
EVENT_TYPE_NORMAL = "Normal"
EVENT_TYPE_WARNING = "Warning"

## Upgrade #####################################################################

# Pod template label keys from the old metering scheme. These are removed from
# every deployment config template during upgrade.
OBSOLETE_POD_TEMPLATE_LABEL_KEYS = [
    "com.redhat.product-name",
    "com.redhat.component-type",
    "com.redhat.product-version",
    "com.redhat.component-version",
    "com.redhat.component-name",
]

# Environment variables of the removed message bus
MESSAGE_BUS_ENV_VAR_NAMES = [
    "MESSAGE_BUS_REDIS_URL",
    "MESSAGE_BUS_REDIS_NAMESPACE",
    "MESSAGE_BUS_REDIS_SENTINEL_HOSTS",
    "MESSAGE_BUS_REDIS_SENTINEL_ROLE",
]

# Attributes of the system redis secret that belonged to the message bus
MESSAGE_BUS_SECRET_ATTRIBUTE_NAMES = [
    "MESSAGE_BUS_URL",
    "MESSAGE_BUS_NAMESPACE",
    "MESSAGE_BUS_SENTINEL_HOSTS",
    "MESSAGE_BUS_SENTINEL_ROLE",
]

# MySQL extra configuration
MYSQL_EXTRA_CONFIG_MAP_NAME = "mysql-extra-conf"
MYSQL_AUTH_PLUGIN_CONFIG_KEY = "mysql-default-authentication-plugin.cnf"
MYSQL_AUTH_PLUGIN_CONFIG_VALUE = (
    "[mysqld]\ndefault_authentication_plugin=mysql_native_password\n"
)

## System file storage #########################################################

# Keys that must be present in the S3 credentials secret
AWS_ACCESS_KEY_ID = "AWS_ACCESS_KEY_ID"
AWS_SECRET_ACCESS_KEY = "AWS_SECRET_ACCESS_KEY"
AWS_BUCKET = "AWS_BUCKET"
AWS_REGION = "AWS_REGION"
AWS_REQUIRED_SECRET_KEYS = [
    AWS_ACCESS_KEY_ID,
    AWS_SECRET_ACCESS_KEY,
    AWS_BUCKET,
    AWS_REGION,
]
