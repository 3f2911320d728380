# probe.py
from __future__ import annotations

import http.client
import logging
import re
import urllib.error
import urllib.request
from typing import Callable, Optional

from .errors import ProbeError
from .model import EnvironmentProbe

logger = logging.getLogger(__name__)

TOKEN_PATH = "/latest/api/token"
INSTANCE_TYPE_PATH = "/latest/meta-data/instance-type"
TOKEN_TTL_SECONDS = "21600"


class MetadataClient:
    """Tiny client for the local instance metadata service."""

    def __init__(
        self,
        base_url: str = "http://169.254.169.254",
        timeout: float = 2.0,
        urlopen: Callable = urllib.request.urlopen,
    ):
        """
        Args:
            base_url: Metadata service address
            timeout: Seconds to wait for each call before giving up
            urlopen: Opener, replaceable in tests
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._urlopen = urlopen

    def _request(self, method: str, path: str, headers: Optional[dict] = None) -> str:
        url = self.base_url + path
        req = urllib.request.Request(url, headers=headers or {}, method=method)
        logger.debug("metadata %s %s", method, url)
        try:
            with self._urlopen(req, timeout=self.timeout) as response:
                return response.read().decode("utf-8").strip()
        except urllib.error.HTTPError as e:
            raise ProbeError(f"metadata request failed: {e.code} {e.reason}")
        except (urllib.error.URLError, OSError) as e:
            reason = getattr(e, "reason", e)
            raise ProbeError(f"metadata service unreachable: {reason}")
        except http.client.HTTPException as e:
            raise ProbeError(f"malformed metadata response: {type(e).__name__}: {e}")
        except UnicodeDecodeError as e:
            raise ProbeError(f"metadata response is not text: {e}")

    def token(self) -> str:
        return self._request(
            "PUT",
            TOKEN_PATH,
            headers={"X-aws-ec2-metadata-token-ttl-seconds": TOKEN_TTL_SECONDS},
        )

    def instance_type(self) -> tuple[str, str]:
        """
        Return (instance_type, source).

        Tries the token-authenticated version first, then the token-less one.
        Raises ProbeError when both fail.
        """
        try:
            token = self.token()
            value = self._request(
                "GET",
                INSTANCE_TYPE_PATH,
                headers={"X-aws-ec2-metadata-token": token},
            )
            if value:
                return value, "imdsv2"
        except ProbeError as e:
            logger.debug("token metadata lookup failed, falling back: %s", e)

        value = self._request("GET", INSTANCE_TYPE_PATH)
        if not value:
            raise ProbeError("metadata service returned an empty instance type")
        return value, "imdsv1"


def is_accelerated(instance_class: str | None, pattern: str) -> bool:
    if not instance_class:
        return False
    return re.match(pattern, instance_class.strip().lower()) is not None


def probe_environment(
    *,
    base_url: str = "http://169.254.169.254",
    timeout: float = 2.0,
    pattern: str = r"^(g|p)\d",
    urlopen: Callable = urllib.request.urlopen,
) -> EnvironmentProbe:
    """
    Ask the metadata service for the instance class.

    Never raises: a failed lookup comes back as a non-accelerated probe with
    source="none" and the error text. What to do about it is the caller's call.
    """
    client = MetadataClient(base_url, timeout=timeout, urlopen=urlopen)
    try:
        instance_class, source = client.instance_type()
    except ProbeError as e:
        logger.debug("environment probe failed: %s", e)
        return EnvironmentProbe(instance_class=None, has_accelerator=False, source="none", error=str(e))

    return EnvironmentProbe(
        instance_class=instance_class,
        has_accelerator=is_accelerated(instance_class, pattern),
        source=source,
    )
