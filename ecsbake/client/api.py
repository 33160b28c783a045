"""ECS RPC API transport: request signing and error decoding over httpx."""

import base64
import hashlib
import hmac
import logging
import uuid
from datetime import datetime, timezone
from urllib.parse import quote

import httpx

logger = logging.getLogger(__name__)

API_VERSION = "2014-05-26"
PRODUCT = "ecs"
SIGNATURE_METHOD = "HMAC-SHA1"
SIGNATURE_VERSION = "1.0"


class ApiError(Exception):
    """Error returned by the ECS API, identified by its vendor error code."""

    def __init__(self, code, message="", request_id="", status_code=0):
        self.code = code
        self.message = message
        self.request_id = request_id
        self.status_code = status_code
        super().__init__(f"{code}: {message}" + (f" (RequestId: {request_id})" if request_id else ""))


# ── Signing ───────────────────────────────────────────────────────


def _percent_encode(value) -> str:
    """RFC 3986 encoding as required by the RPC signature."""
    return quote(str(value), safe="~")


def canonical_query(params: dict) -> str:
    """Sorted, percent-encoded ``k=v&k=v`` string."""
    return "&".join(f"{_percent_encode(k)}={_percent_encode(params[k])}" for k in sorted(params))


def sign(params: dict, secret: str, method: str = "GET") -> str:
    """Compute the signature for *params* with signature version 1.0."""
    string_to_sign = f"{method}&{_percent_encode('/')}&{_percent_encode(canonical_query(params))}"
    digest = hmac.new(f"{secret}&".encode(), string_to_sign.encode(), hashlib.sha1).digest()
    return base64.b64encode(digest).decode()


def _timestamp() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


# ── Transport ─────────────────────────────────────────────────────


class EcsApi:
    """Signed RPC calls against an ECS endpoint.

    Every request carries the ApsaraStack routing parameters (Product,
    Department, ResourceGroup) when configured and the region header.
    """

    def __init__(
        self,
        access_key,
        secret_key,
        region_id,
        endpoint="https://ecs.aliyuncs.com",
        department="",
        resource_group="",
        http_client: httpx.AsyncClient | None = None,
        timeout=60,
    ):
        self.access_key = access_key
        self.secret_key = secret_key
        self.region_id = region_id
        self.endpoint = endpoint.rstrip("/")
        self.department = department
        self.resource_group = resource_group
        self.timeout = timeout
        self._http_client = http_client

    def build_params(self, action, params) -> dict:
        """Merge common parameters into *params* and attach the signature."""
        signed = {
            "Action": action,
            "Format": "JSON",
            "Version": API_VERSION,
            "AccessKeyId": self.access_key,
            "SignatureMethod": SIGNATURE_METHOD,
            "SignatureVersion": SIGNATURE_VERSION,
            "SignatureNonce": uuid.uuid4().hex,
            "Timestamp": _timestamp(),
            "Product": PRODUCT,
        }
        if self.department:
            signed["Department"] = self.department
        if self.resource_group:
            signed["ResourceGroup"] = self.resource_group
        signed.update({k: str(v) for k, v in params.items()})
        signed["Signature"] = sign(signed, self.secret_key)
        return signed

    async def call(self, action, params=None) -> dict:
        """Invoke *action* and return the decoded JSON body.

        Raises:
            ApiError: the API answered with an error payload.
            httpx.HTTPError: the request did not complete.
        """
        query = self.build_params(action, params or {})
        headers = {"x-acs-regionid": self.region_id}
        logger.debug(f"ECS {action} {self.endpoint}")

        if self._http_client is not None:
            resp = await self._http_client.get(self.endpoint + "/", params=query, headers=headers, timeout=self.timeout)
        else:
            async with httpx.AsyncClient() as client:
                resp = await client.get(self.endpoint + "/", params=query, headers=headers, timeout=self.timeout)

        return _decode_response(resp)


def _decode_response(resp: httpx.Response) -> dict:
    try:
        body = resp.json()
    except ValueError:
        body = None

    if resp.is_success and isinstance(body, dict):
        return body

    if isinstance(body, dict) and body.get("Code"):
        raise ApiError(
            body["Code"],
            body.get("Message", ""),
            request_id=body.get("RequestId", ""),
            status_code=resp.status_code,
        )
    raise ApiError(f"HTTP {resp.status_code}", resp.text[:200], status_code=resp.status_code)
