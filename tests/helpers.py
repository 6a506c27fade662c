"""Manifest builders shared by tests."""

import json

from casregistry.manifests import OCI_IMAGE_INDEX, OCI_IMAGE_MANIFEST


def image_manifest(config_digest: str, layer_digests=(), media_type: str = OCI_IMAGE_MANIFEST) -> bytes:
    document = {
        "schemaVersion": 2,
        "mediaType": media_type,
        "config": {
            "mediaType": "application/vnd.oci.image.config.v1+json",
            "digest": config_digest,
            "size": 2,
        },
        "layers": [
            {
                "mediaType": "application/vnd.oci.image.layer.v1.tar+gzip",
                "digest": digest,
                "size": 1,
            }
            for digest in layer_digests
        ],
    }
    return json.dumps(document).encode("utf-8")


def index_manifest(manifest_digests=(), media_type: str = OCI_IMAGE_INDEX) -> bytes:
    document = {
        "schemaVersion": 2,
        "mediaType": media_type,
        "manifests": [
            {
                "mediaType": OCI_IMAGE_MANIFEST,
                "digest": digest,
                "size": 100,
                "platform": {"architecture": "amd64", "os": "linux"},
            }
            for digest in manifest_digests
        ],
    }
    return json.dumps(document).encode("utf-8")
