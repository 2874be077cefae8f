import json

from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


class LLMClientOpenai(LLMClientInterface):
    """Client for OpenAI-compatible /v1/chat/completions streaming APIs."""

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default=self._get_default_base_url(), val_type="string")
        self._api_key = self.get_config_val("API_KEY", default=None, val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Openai"

    def _get_default_model(self) -> str:
        return "gpt-4o-mini"

    def _get_default_base_url(self) -> str:
        return "https://api.openai.com"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="API_KEY", val_type="string", default=None),
            EnvConfig(env_key="BASE_URL", val_type="string", default=self._get_default_base_url()),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        return {"Authorization": f"Bearer {self._api_key}"}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return "/v1/models"

    def _get_endpoint_chat(self) -> str:
        return "/v1/chat/completions"

    ################ PAYLOAD BUILDER ##################
    def get_chat_payload(self, messages: list[dict]) -> dict:
        return {
            "model": self.chat_model,
            "messages": messages,
            "temperature": self.temperature,
            "stream": True,
        }

    ##########################################
    ################# OTHER ##################
    ##########################################

    def extract_stream_fragment(self, line: str) -> str | None:
        """Extract the delta content from one SSE line of a chat completion stream.

        Raises:
            ValueError: If a data line is not JSON or reports an error.
        """
        if not line.startswith("data:"):
            # comments / keep-alives
            return ""
        payload = line[len("data:"):].strip()
        if payload == "[DONE]":
            return None
        data = json.loads(payload)
        if "error" in data:
            raise ValueError("%s chat stream failed: %s" % (self._get_engine_name(), data["error"]))
        choices = data.get("choices") or []
        if not choices:
            return ""
        return (choices[0].get("delta") or {}).get("content") or ""
