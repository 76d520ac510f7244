"""Client for the remote generation functions."""

import logging
from typing import Any, Optional

import httpx

from gen_scheduler.config import Settings, get_settings

logger = logging.getLogger(__name__)


class EdgeFunctionError(Exception):
    """A remote function answered with a non-2xx status or could not be reached."""

    def __init__(self, function_name: str, status_code: Optional[int], detail: str):
        self.function_name = function_name
        self.status_code = status_code
        self.detail = detail
        if status_code is None:
            message = f"{function_name} request failed: {detail}"
        else:
            message = f"{function_name} error: {status_code} {detail}"
        super().__init__(message)


class EdgeFunctionClient:
    """
    Invokes remote functions over HTTP.

    Each call is a POST of a JSON body to
    ``{base_url}/functions/v1/{function_name}`` authenticated with the
    service key.
    """

    def __init__(
        self,
        base_url: str,
        service_key: str,
        timeout: Optional[float] = None,
        orchestrator_function: str = "run_generation_orchestrator",
        bab_structure_function: str = "generate_bab_ai_structure",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.service_key = service_key
        self.timeout = timeout
        self.orchestrator_function = orchestrator_function
        self.bab_structure_function = bab_structure_function
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "EdgeFunctionClient":
        settings = settings or get_settings()
        return cls(
            base_url=settings.functions_base_url,
            service_key=settings.service_role_key,
            timeout=settings.remote_timeout_seconds,
            orchestrator_function=settings.orchestrator_function,
            bab_structure_function=settings.bab_structure_function,
        )

    def _headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.service_key}",
            "apikey": self.service_key,
        }

    async def invoke(self, function_name: str, body: dict[str, Any]) -> str:
        """
        POST `body` to a remote function.

        Returns:
            The response body as text

        Raises:
            EdgeFunctionError: on transport failure or a non-2xx response
        """
        url = f"{self.base_url}/functions/v1/{function_name}"

        try:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                transport=self._transport,
            ) as client:
                response = await client.post(url, json=body, headers=self._headers())
        except httpx.RequestError as e:
            logger.error(f"Edge {function_name} request error: {e}")
            raise EdgeFunctionError(function_name, None, str(e)) from e

        if not response.is_success:
            logger.error(f"Edge {function_name} error: {response.status_code} {response.text}")
            raise EdgeFunctionError(function_name, response.status_code, response.text)

        return response.text

    async def run_orchestrator(self, master_id: str) -> str:
        """Hand one master to the downstream step orchestrator."""
        return await self.invoke(self.orchestrator_function, {"master_id": master_id})

    async def generate_bab_structure(self, bab_id: str) -> str:
        """Generate the AI structure of one chapter."""
        return await self.invoke(self.bab_structure_function, {"bab_id": bab_id})
