"""Signed playback URLs for Veo outputs written to Cloud Storage."""

from datetime import datetime, timedelta, timezone

from google.cloud import storage

PLAYBACK_EXPIRATION_SECONDS = 48 * 3600  # 48 hours


def parse_gcs_uri(uri: str) -> tuple[str, str]:
    """Split gs://bucket/path/to/object into (bucket, blob name)."""
    if not uri.startswith("gs://"):
        raise ValueError(f"Invalid GCS URI: {uri}")
    parts = uri[5:].split("/", 1)
    if len(parts) != 2 or not parts[0] or not parts[1]:
        raise ValueError(f"Invalid GCS URI format: {uri}")
    return parts[0], parts[1]


def generate_signed_url(
    gcs_uri: str,
    *,
    expiration_seconds: int = PLAYBACK_EXPIRATION_SECONDS,
    method: str = "GET",
) -> str:
    """
    Generate a v4 signed URL for a gs:// object.

    Uses default credentials (GOOGLE_APPLICATION_CREDENTIALS or ADC).
    """
    bucket_name, blob_name = parse_gcs_uri(gcs_uri)
    client = storage.Client()
    bucket = client.bucket(bucket_name)
    blob = bucket.blob(blob_name)
    expiration = datetime.now(timezone.utc) + timedelta(seconds=expiration_seconds)
    return blob.generate_signed_url(
        expiration=expiration,
        method=method,
        version="v4",
    )


def resolve_playback_url(
    video_uri: str | None,
    *,
    sign: bool,
    expiration_seconds: int = PLAYBACK_EXPIRATION_SECONDS,
) -> str | None:
    """Signed HTTPS URL for gs:// outputs when signing is enabled; anything else passes through."""
    if not video_uri or not sign or not video_uri.startswith("gs://"):
        return video_uri
    return generate_signed_url(video_uri, expiration_seconds=expiration_seconds)
