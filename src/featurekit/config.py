"""
Global Constants and Defaults.

This module centralizes the well-known names shared by the data model and
the assembly engine: default artifact type, recognised artifact metadata
keys, reserved extension names and internal configuration property keys.
"""

from typing import Set

# --- Artifact coordinates ---
DEFAULT_TYPE = "jar"

# Types normalised to DEFAULT_TYPE on construction
TYPE_ALIASES: Set[str] = {"bundle"}

# Wildcard token in override rules
COORDINATE_MATCH_ALL = "*"

# --- Artifact metadata keys ---
KEY_ALIAS = "alias"
KEY_START_ORDER = "start-order"
KEY_FEATURE_ORIGINS = "feature-origins"

# Artifact JSON objects carry their coordinates under this key
KEY_ID = "id"

# Aliases declared without a version get this one
ALIAS_DEFAULT_VERSION = "0.0.0"

# --- Reserved extension names ---
EXTENSION_NAME_REPOINIT = "repoinit"
EXTENSION_NAME_CONTENT_PACKAGES = "content-packages"
EXTENSION_NAME_ASSEMBLED_FEATURES = "assembled-features"
EXTENSION_NAME_EXECUTION_ENVIRONMENT = "execution-environment"

# --- Configuration properties ---
# Properties with this prefix are bookkeeping, never handed to the runtime
CONFIGURATOR_PREFIX = ":configurator:"
PROP_PREFIX = CONFIGURATOR_PREFIX + "feature-"

# Bundle a configuration belongs to; removing the bundle removes the configuration
PROP_ARTIFACT_ID = PROP_PREFIX + "service.bundleLocation"

# --- Handler configuration ---
# Handler configuration table applied to every handler
HANDLER_CONFIGURATION_ALL = "all"

# Default file name for builder settings
SETTINGS_FILE_NAME = "featurekit.toml"
