# storage.py
from __future__ import annotations

import http.client
import logging
import os
import shutil
import tempfile
import urllib.error
import urllib.request
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Iterator, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from .errors import ArtifactMissing, TransferError
from .model import RemoteArtifact

logger = logging.getLogger(__name__)


class ObjectStore:
    """Thin wrapper around an S3 client for the handful of calls provisioning needs."""

    def __init__(self, region_name: Optional[str] = None, client: Any = None) -> None:
        self._region_name = region_name
        self._client = client

    def _s3(self) -> Any:
        if self._client is None:
            self._client = boto3.client("s3", region_name=self._region_name)
        return self._client

    def download(self, bucket: str, key: str, destination: Path) -> Path:
        destination.parent.mkdir(parents=True, exist_ok=True)
        logger.debug("downloading s3://%s/%s -> %s", bucket, key, destination)
        try:
            self._s3().download_file(bucket, key, str(destination))
        except (BotoCoreError, ClientError) as exc:
            raise TransferError(f"Failed to download s3://{bucket}/{key}: {exc}") from exc
        if not destination.exists():
            raise TransferError(f"Download of s3://{bucket}/{key} produced no file")
        return destination

    def latest_key(self, bucket: str, prefix: str, suffix: str = ".exe") -> str:
        """Newest object under prefix whose key ends with suffix."""
        newest = None
        kwargs: dict[str, Any] = {"Bucket": bucket, "Prefix": prefix}
        try:
            while True:
                response = self._s3().list_objects_v2(**kwargs)
                for obj in response.get("Contents", []):
                    if not obj["Key"].lower().endswith(suffix):
                        continue
                    if newest is None or obj["LastModified"] > newest["LastModified"]:
                        newest = obj
                if not response.get("IsTruncated"):
                    break
                kwargs["ContinuationToken"] = response["NextContinuationToken"]
        except (BotoCoreError, ClientError) as exc:
            raise TransferError(f"Failed to list s3://{bucket}/{prefix}: {exc}") from exc

        if newest is None:
            raise TransferError(f"No '{suffix}' objects under s3://{bucket}/{prefix}")
        return newest["Key"]


def fetch_url(
    url: str,
    destination: Path,
    *,
    token: Optional[str] = None,
    urlopen: Callable = urllib.request.urlopen,
) -> Path:
    """
    Download a URL to destination, sending `Authorization: token <token>` if given.

    Bytes land in a sibling `.part` file that replaces destination only once
    the whole body has arrived, so a broken transfer leaves nothing at
    destination.
    """
    headers = {"User-Agent": "simprov/0.1"}
    if token:
        headers["Authorization"] = f"token {token}"
    req = urllib.request.Request(url, headers=headers, method="GET")
    destination.parent.mkdir(parents=True, exist_ok=True)
    partial = destination.with_name(destination.name + ".part")
    logger.debug("downloading %s -> %s (auth=%s)", url, destination, bool(token))
    try:
        with urlopen(req) as response, partial.open("wb") as out:
            shutil.copyfileobj(response, out)
        os.replace(partial, destination)
    except urllib.error.HTTPError as e:
        raise TransferError(f"Download failed: {e.code} {e.reason} ({url})") from e
    except (urllib.error.URLError, OSError) as e:
        raise TransferError(f"Download failed: {getattr(e, 'reason', e)} ({url})") from e
    except http.client.HTTPException as e:
        raise TransferError(f"Download failed: {type(e).__name__} ({url})") from e
    finally:
        partial.unlink(missing_ok=True)
    return destination


def retrieve(artifact: RemoteArtifact, store: ObjectStore, *, token: Optional[str] = None) -> Path:
    """Fetch an artifact and check that it landed where it was declared to."""
    if artifact.is_s3:
        path = store.download(artifact.bucket, artifact.key, artifact.destination)
    else:
        path = fetch_url(artifact.source, artifact.destination, token=token)
    if not path.is_file():
        raise ArtifactMissing(what=artifact.name, expected=str(artifact.destination))
    return path


def extract(artifact: RemoteArtifact, archive: Path, destination: Path) -> Path:
    """
    Unpack a retrieved archive. For artifacts declared `extracted` the
    destination must hold files afterwards.
    """
    try:
        shutil.unpack_archive(str(archive), str(destination))
    except (shutil.ReadError, ValueError) as e:
        raise TransferError(f"Could not extract {archive.name}: {e}") from e
    if artifact.expect == "extracted" and not dir_populated(destination):
        raise ArtifactMissing(what=f"{artifact.name} contents", expected=str(destination))
    return destination


@contextmanager
def scratch_dir(prefix: str = "simprov-") -> Iterator[Path]:
    """Temporary directory that is removed on exit, success or not."""
    path = Path(tempfile.mkdtemp(prefix=prefix))
    try:
        yield path
    finally:
        shutil.rmtree(path, ignore_errors=True)
        logger.debug("removed scratch dir %s", path)


def dir_populated(path: Path) -> bool:
    return path.is_dir() and any(path.iterdir())
