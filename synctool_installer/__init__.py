"""
synctool_installer — release build → install → strip pipeline.

Compile the synctool binary in release mode, copy it to the deployment
target and strip its debug symbols in place. Fail fast, no rollback.

Profile: cargo-release-strip
"""

__version__ = "0.1.0"
PIPELINE_NAME = "synctool_installer"
PROFILE_ID = "cargo-release-strip"
SCHEMA_VERSION = "0.1"
