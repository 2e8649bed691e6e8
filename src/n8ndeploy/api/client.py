"""HTTP client for the local ngrok agent API"""

from typing import Any, Dict, List, Optional

import httpx

from n8ndeploy.config.manager import ngrok_hostname


class APIError(Exception):
    """Base exception for agent API errors"""

    pass


class NotFoundError(APIError):
    """Resource not found"""

    pass


class TunnelAPI:
    """Tunnel operations"""

    def __init__(self, client: "AgentClient"):
        self.client = client

    def list(self) -> List[Dict[str, Any]]:
        """List active tunnels"""
        response = self.client._get("/api/tunnels")
        if not isinstance(response, dict):
            raise APIError(f"Unexpected tunnel list from ngrok agent: {response!r}")
        return response.get("tunnels", [])

    def get(self, name: str) -> Dict[str, Any]:
        """Get tunnel details"""
        return self.client._get(f"/api/tunnels/{name}")


class AgentClient:
    """Client for the ngrok agent's local inspection API"""

    def __init__(
        self,
        base_url: str = "http://127.0.0.1:4040",
        timeout: float = 5.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

        self.tunnels = TunnelAPI(self)

    def find_tunnel(self, domain: str) -> Optional[Dict[str, Any]]:
        """Return the tunnel serving ``domain``, if the agent has one"""
        host = ngrok_hostname(domain)
        for tunnel in self.tunnels.list():
            if ngrok_hostname(tunnel.get("public_url", "")) == host:
                return tunnel
        return None

    def _get(self, path: str) -> Any:
        """Execute GET request"""
        return self._request("GET", path)

    def _request(self, method: str, path: str, **kwargs) -> Any:
        """Execute HTTP request"""
        url = self.base_url + path

        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                response = client.request(method, url, **kwargs)
        except httpx.TransportError as e:
            raise APIError(f"ngrok agent not reachable at {self.base_url}: {e}") from e

        if response.status_code == 404:
            raise NotFoundError(f"Resource not found: {path}")
        elif response.status_code >= 400:
            raise APIError(f"API error {response.status_code}: {response.text}")

        if response.text:
            try:
                return response.json()
            except ValueError as e:
                raise APIError(f"Invalid response from ngrok agent: {response.text[:200]}") from e

        return None


def check_public_url(
    url: str,
    timeout: float = 10.0,
    transport: Optional[httpx.BaseTransport] = None,
) -> bool:
    """Whether n8n answers its health endpoint at the public URL"""
    try:
        with httpx.Client(timeout=timeout, transport=transport, follow_redirects=True) as client:
            response = client.get(
                url.rstrip("/") + "/healthz",
                headers={"ngrok-skip-browser-warning": "1"},
            )
    except httpx.HTTPError:
        return False
    return response.is_success
