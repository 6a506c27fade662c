"""
Configuration module for the container registry.

Loads all configuration from environment variables with sensible defaults.
"""

import os


class Config:
    """
    Registry configuration from environment variables.

    Loads all configuration values from environment variables with sensible defaults.
    All settings can be overridden by setting the corresponding environment variable.
    """

    def __init__(self):
        """
        Initialize configuration from environment variables.

        Environment Variables:
            LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR). Default: INFO
            FLASK_HOST: Server bind address. Default: 0.0.0.0
            FLASK_PORT: Server bind port. Default: 5000
            STORAGE_BACKEND: Backing store implementation (memory, filesystem). Default: memory
            STORAGE_PATH: Root directory for the filesystem backend. Default: ./data
            MAX_MANIFEST_SIZE: Largest accepted manifest body in bytes. Default: 10485760
            TAG_LIST_DEFAULT_PAGE_SIZE: Tag page size when "n" is not given. Default: 100
            MAX_REPOSITORY_NAME_LENGTH: Maximum repository name length. Default: 255
            MAX_TAG_LENGTH: Maximum tag length. Default: 128
        """
        # Logging
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

        # Server
        self.FLASK_HOST = os.getenv("FLASK_HOST", "0.0.0.0")
        self.FLASK_PORT = int(os.getenv("FLASK_PORT", "5000"))

        # Storage
        self.STORAGE_BACKEND = os.getenv("STORAGE_BACKEND", "memory")
        self.STORAGE_PATH = os.getenv("STORAGE_PATH", "./data")

        # Protocol limits
        self.MAX_MANIFEST_SIZE = int(os.getenv("MAX_MANIFEST_SIZE", str(10 * 1024 * 1024)))
        self.TAG_LIST_DEFAULT_PAGE_SIZE = int(os.getenv("TAG_LIST_DEFAULT_PAGE_SIZE", "100"))

        # Validation limits
        self.MAX_REPOSITORY_NAME_LENGTH = int(os.getenv("MAX_REPOSITORY_NAME_LENGTH", "255"))
        self.MAX_TAG_LENGTH = int(os.getenv("MAX_TAG_LENGTH", "128"))

    def __repr__(self):
        """String representation for logging."""
        return (
            f"Config(LOG_LEVEL={self.LOG_LEVEL}, "
            f"FLASK_HOST={self.FLASK_HOST}, "
            f"FLASK_PORT={self.FLASK_PORT}, "
            f"STORAGE_BACKEND={self.STORAGE_BACKEND}, "
            f"STORAGE_PATH={self.STORAGE_PATH}, "
            f"MAX_MANIFEST_SIZE={self.MAX_MANIFEST_SIZE})"
        )


# Global config instance
config = Config()
