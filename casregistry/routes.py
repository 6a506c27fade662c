"""
Flask application and registry endpoints.

Implements the push/pull subset of the OCI Distribution / Docker Registry v2 API:

    GET        /v2/                                    version check
    GET/HEAD   /v2/<name>/manifests/<reference>        pull manifest (digest or tag)
    PUT        /v2/<name>/manifests/<reference>        push manifest
    DELETE     /v2/<name>/manifests/<reference>        delete manifest or tag
    POST       /v2/<name>/blobs/uploads/               start chunked upload
    PATCH      /v2/<name>/blobs/uploads/<session_id>   append chunk
    PUT        /v2/<name>/blobs/uploads/<session_id>   append last chunk and finalize (?digest=)
    PUT        /v2/<name>/blobs/<digest>               single-request blob push
    GET/HEAD   /v2/<name>/blobs/<digest>               pull blob
    DELETE     /v2/<name>/blobs/<digest>               delete blob
    GET        /v2/<name>/tags/list?n=&last=           paginated tag listing
"""

import io
import logging
import re

from flask import Blueprint, Flask, Response, abort, current_app, jsonify, make_response, request, send_file

from .components import Registry
from .config import config
from .digest import is_valid_digest
from .errors import DigestInvalid, ManifestInvalid, ManifestTooLarge, RegistryError
from .validation import validate_repository_name

logger = logging.getLogger(__name__)

SESSION_ID_PATTERN = re.compile(r"^[0-9a-z-]+$")

bp = Blueprint("registry", __name__)


def _registry() -> Registry:
    return current_app.extensions["registry"]


def _range(total: int) -> str:
    return f"0-{max(total - 1, 0)}"


def _check_blob_digest(digest: str) -> None:
    if not is_valid_digest(digest):
        logger.warning(f"Invalid digest format: {digest}")
        raise DigestInvalid("Invalid digest: must be sha256:<64 hex characters>")


def _check_session_id(session_id: str) -> None:
    if not SESSION_ID_PATTERN.match(session_id):
        logger.warning(f"Invalid upload session id: {session_id}")
        abort(404)


# -------------------------------
# Registry Endpoints
# -------------------------------


@bp.route("/v2/")
def v2_root():
    """
    Registry v2 API version check endpoint.

    Headers:
        Docker-Distribution-API-Version: registry/2.0
    """
    logger.info("Registry v2 API root accessed")
    resp = Response(status=200)
    resp.headers["Docker-Distribution-API-Version"] = "registry/2.0"
    return resp


@bp.route("/favicon.ico")
def favicon():
    return Response(status=200)


@bp.route("/v2/<path:repository>/manifests/<reference>", methods=["GET", "HEAD"])
def get_manifest(repository, reference):
    """
    Get or check a manifest by digest or tag.

    Response Headers:
        Content-Type: mediaType field of the stored manifest
        Content-Length: Size of manifest in bytes
        Docker-Content-Digest: SHA256 digest of manifest

    Errors:
        NAME_INVALID (400): reference is neither a digest nor a tag
        MANIFEST_UNKNOWN (404): no such tag or manifest
        DIGEST_INVALID (400): stored manifest no longer matches its digest
    """
    validate_repository_name(repository)
    logger.info(f"Manifest requested: repository='{repository}', reference='{reference}', method={request.method}")

    body, digest, media_type = _registry().get_manifest(repository, reference)
    logger.debug(f"Manifest digest: {digest}, size: {len(body)} bytes, type: {media_type}")

    if request.method == "HEAD":
        resp = Response(status=200)
    else:
        resp = make_response(body)
    resp.headers["Content-Type"] = media_type
    resp.headers["Content-Length"] = len(body)
    resp.headers["Docker-Content-Digest"] = digest
    return resp


@bp.route("/v2/<path:repository>/manifests/<reference>", methods=["PUT"])
def put_manifest(repository, reference):
    """
    Push a manifest by digest or tag.

    Request Headers:
        Content-Type: Required. Declared manifest media type.
        Content-Length: Required, non-zero, at most MAX_MANIFEST_SIZE.

    Response Headers:
        Location: /v2/<name>/manifests/<digest>
        Docker-Content-Digest: Digest of the stored manifest

    Returns:
        201 Created
    """
    validate_repository_name(repository)

    media_type = request.headers.get("Content-Type")
    if not media_type:
        raise ManifestInvalid("Content-Type is required")
    size = request.content_length or 0
    if size == 0:
        raise ManifestInvalid("Content-Length is required")
    if size > current_app.config["MAX_MANIFEST_SIZE"]:
        logger.warning(f"Manifest too large: {size} bytes")
        raise ManifestTooLarge()

    body = request.get_data()
    logger.info(f"{request.method} repository='{repository}', reference='{reference}', size: {len(body)} bytes")

    digest = _registry().put_manifest(repository, reference, media_type, body)

    resp = Response(status=201)
    resp.headers["Location"] = f"/v2/{repository}/manifests/{digest}"
    resp.headers["Docker-Content-Digest"] = digest
    return resp


@bp.route("/v2/<path:repository>/manifests/<reference>", methods=["DELETE"])
def delete_manifest(repository, reference):
    validate_repository_name(repository)
    logger.info(f"{request.method} repository='{repository}', reference='{reference}'")
    _registry().delete_manifest(repository, reference)
    return Response("Accepted", status=202)


@bp.route("/v2/<path:repository>/blobs/uploads/", methods=["POST"])
def start_upload(repository):
    """
    Start a chunked blob upload.

    Response Headers:
        Location: /v2/<name>/blobs/uploads/<session_id>
        Range: 0-0
        Docker-Upload-UUID: session id

    Returns:
        202 Accepted
    """
    validate_repository_name(repository)
    session_id = _registry().uploads.create(repository)

    resp = Response(status=202)
    resp.headers["Location"] = f"/v2/{repository}/blobs/uploads/{session_id}"
    resp.headers["Range"] = "0-0"
    resp.headers["Docker-Upload-UUID"] = session_id
    return resp


@bp.route("/v2/<path:repository>/blobs/uploads/<session_id>", methods=["PATCH"])
def append_upload(repository, session_id):
    """
    Append the request body to an upload session.

    Response Headers:
        Location: session URL to continue the upload
        Range: 0-<last byte offset received>

    Returns:
        202 Accepted
    """
    validate_repository_name(repository)
    _check_session_id(session_id)

    chunk = request.get_data()
    total = _registry().uploads.append_chunk(repository, session_id, chunk)
    logger.info(f"Upload chunk: repository='{repository}', session={session_id}, total: {total} bytes")

    resp = Response(status=202)
    resp.headers["Location"] = f"/v2/{repository}/blobs/uploads/{session_id}"
    resp.headers["Range"] = _range(total)
    resp.headers["Docker-Upload-UUID"] = session_id
    return resp


@bp.route("/v2/<path:repository>/blobs/uploads/<session_id>", methods=["PUT"])
def finalize_upload(repository, session_id):
    """
    Append the request body (if any) and finalize the upload.

    Query Parameters:
        digest: Required. Expected digest of the complete blob.

    Response Headers:
        Location: /v2/<name>/blobs/<digest>
        Range: 0-<last byte offset>
        Docker-Content-Digest: verified digest

    Errors:
        DIGEST_INVALID (400): digest missing, malformed, or not matching the
            uploaded bytes. The session is kept so the client can retry.

    Returns:
        201 Created
    """
    validate_repository_name(repository)
    _check_session_id(session_id)
    expected_digest = request.args.get("digest", "")
    _check_blob_digest(expected_digest)

    chunk = request.get_data()
    digest, total = _registry().uploads.finalize(repository, session_id, chunk, expected_digest)

    resp = Response("Created", status=201)
    resp.headers["Location"] = f"/v2/{repository}/blobs/{digest}"
    resp.headers["Range"] = _range(total)
    resp.headers["Docker-Content-Digest"] = digest
    return resp


@bp.route("/v2/<path:repository>/blobs/<digest>", methods=["PUT"])
def put_blob(repository, digest):
    validate_repository_name(repository)
    _check_blob_digest(digest)
    logger.info(f"Blob push: repository='{repository}', digest='{digest}'")

    _registry().put_blob(repository, digest, request.get_data())

    resp = Response("Created", status=201)
    resp.headers["Location"] = f"/v2/{repository}/blobs/{digest}"
    resp.headers["Docker-Content-Digest"] = digest
    return resp


@bp.route("/v2/<path:repository>/blobs/<digest>", methods=["GET", "HEAD"])
def get_blob(repository, digest):
    """
    Get or check a blob by digest.

    The stored bytes are re-hashed before responding, so a corrupted backend
    object surfaces as DIGEST_INVALID instead of being served.

    Response Headers:
        Content-Type: application/octet-stream
        Content-Length: Size of blob in bytes
        Docker-Content-Digest: SHA256 digest

    Errors:
        BLOB_UNKNOWN (404): blob absent
        DIGEST_INVALID (400): malformed digest, or stored bytes do not match it
    """
    validate_repository_name(repository)
    _check_blob_digest(digest)
    logger.info(f"Blob requested: repository='{repository}', digest='{digest}', method={request.method}")

    blob_bytes = _registry().get_blob(repository, digest)
    blob_size = len(blob_bytes)
    logger.debug(f"Serving blob: {digest}, size: {blob_size} bytes")

    if request.method == "HEAD":
        resp = Response(status=200)
        resp.headers["Content-Type"] = "application/octet-stream"
        resp.headers["Content-Length"] = blob_size
        resp.headers["Docker-Content-Digest"] = digest
        return resp

    resp = send_file(io.BytesIO(blob_bytes), mimetype="application/octet-stream")
    resp.headers["Content-Length"] = blob_size
    resp.headers["Docker-Content-Digest"] = digest
    return resp


@bp.route("/v2/<path:repository>/blobs/<digest>", methods=["DELETE"])
def delete_blob(repository, digest):
    validate_repository_name(repository)
    _check_blob_digest(digest)
    logger.info(f"{request.method} blob: repository='{repository}', digest='{digest}'")
    _registry().delete_blob(repository, digest)
    return Response("Accepted", status=202)


@bp.route("/v2/<path:repository>/tags/list", methods=["GET"])
def list_tags(repository):
    """
    List tags of a repository.

    Query Parameters:
        n: Page size (default TAG_LIST_DEFAULT_PAGE_SIZE)
        last: Resume strictly after this tag

    Response Format:
        {"name": "<repository>", "tags": ["a", "b"]}

    Response Headers:
        Link: </v2/<name>/tags/list?n=<n>&last=<cursor>>; rel="next"
            Only present when more tags follow this page.
    """
    validate_repository_name(repository)
    default_page_size = current_app.config["TAG_LIST_DEFAULT_PAGE_SIZE"]
    count = request.args.get("n", type=int)
    if count is None or count <= 0:
        count = default_page_size
    last = request.args.get("last") or None
    logger.info(f"Tag list: repository='{repository}', n={count}, last={last}")

    page = _registry().tags.list(repository, count, last)

    resp = jsonify({"name": repository, "tags": page.names})
    if page.has_more:
        resp.headers["Link"] = f'</v2/{repository}/tags/list?n={count}&last={page.next_cursor}>; rel="next"'
    return resp


# -------------------------------
# Error handling
# -------------------------------


def handle_registry_error(error: RegistryError):
    logger.debug(f"Registry error {error.code} ({error.status}): {error.message}")
    resp = jsonify(error.to_dict())
    resp.status_code = error.status
    return resp


def handle_not_found(error):
    resp = jsonify({"errors": [{"code": "NOT_FOUND", "message": "Not found"}]})
    resp.status_code = 404
    return resp


def create_app(registry: Registry = None, app_config=None) -> Flask:
    """
    Build the Flask application.

    Args:
        registry: Registry to serve. Built from app_config when omitted.
        app_config: Config instance. Defaults to the global config.

    Returns:
        Configured Flask app
    """
    cfg = app_config or config
    app = Flask(__name__)
    app.config["MAX_MANIFEST_SIZE"] = cfg.MAX_MANIFEST_SIZE
    app.config["TAG_LIST_DEFAULT_PAGE_SIZE"] = cfg.TAG_LIST_DEFAULT_PAGE_SIZE
    app.config["MAX_REPOSITORY_NAME_LENGTH"] = cfg.MAX_REPOSITORY_NAME_LENGTH
    app.config["MAX_TAG_LENGTH"] = cfg.MAX_TAG_LENGTH
    app.extensions["registry"] = registry if registry is not None else Registry.from_config(cfg)

    app.register_blueprint(bp)
    app.register_error_handler(RegistryError, handle_registry_error)
    app.register_error_handler(404, handle_not_found)
    app.register_error_handler(405, handle_not_found)
    return app
