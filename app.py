"""
Content-addressable container image registry.

Serves the OCI Distribution / Docker Registry v2 push and pull API over
pluggable backing stores.

Endpoints:
    - GET /v2/ - Version check
    - GET/HEAD/PUT/DELETE /v2/<name>/manifests/<reference> - Manifests by digest or tag
    - POST /v2/<name>/blobs/uploads/ - Start chunked upload
    - PATCH/PUT /v2/<name>/blobs/uploads/<session_id> - Append / finalize upload
    - GET/HEAD/PUT/DELETE /v2/<name>/blobs/<digest> - Blobs
    - GET /v2/<name>/tags/list - Paginated tag listing

Environment Variables:
    LOG_LEVEL, FLASK_HOST, FLASK_PORT, STORAGE_BACKEND, STORAGE_PATH,
    MAX_MANIFEST_SIZE, TAG_LIST_DEFAULT_PAGE_SIZE, MAX_REPOSITORY_NAME_LENGTH,
    MAX_TAG_LENGTH

Example:
    $ STORAGE_BACKEND=filesystem STORAGE_PATH=/var/lib/registry python app.py
    $ podman push --tls-verify=false myimage localhost:5000/library/myimage:latest
"""

import logging

from casregistry.config import config
from casregistry.routes import create_app

# Configure logging
logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


def main():
    """Main entry point for the registry application."""
    debug_mode = logger.getEffectiveLevel() == logging.DEBUG
    logger.info(f"Starting container registry service on {config.FLASK_HOST}:{config.FLASK_PORT}")
    logger.info(f"Configuration: {config}")
    logger.info(f"Log level: {logging.getLevelName(logger.getEffectiveLevel())}")
    app = create_app(app_config=config)
    if debug_mode:
        logger.info("Flask debug mode enabled")
    # Each request runs in its own thread; upload appends are serialized per session.
    app.run(host=config.FLASK_HOST, port=config.FLASK_PORT, debug=debug_mode, threaded=True, use_reloader=False)


if __name__ == "__main__":
    main()
