"""HuggingFace Inference API embedding client.

Uses the feature-extraction pipeline of a sentence-transformers model, which
returns one pooled vector per input text.
"""

from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


class EmbedClientHuggingface(EmbedClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default="https://router.huggingface.co/hf-inference", val_type="string")
        self._api_key = self.get_config_val("API_KEY", default=None, val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Huggingface"

    def _get_default_model(self) -> str:
        return "sentence-transformers/all-MiniLM-L6-v2"

    def _get_default_vector_size(self) -> int:
        return 384

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="API_KEY", val_type="string", default=None),
            EnvConfig(env_key="BASE_URL", val_type="string", default="https://router.huggingface.co/hf-inference"),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        return {"Authorization": f"Bearer {self._api_key}"}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return f"/models/{self.embed_model}"

    def get_endpoint_embedding(self) -> str:
        return f"/models/{self.embed_model}/pipeline/feature-extraction"

    ################ PAYLOAD BUILDER ##################
    def get_embed_payload(self, texts: list[str]) -> dict:
        # wait_for_model avoids 503s while a cold model is loading
        return {"inputs": texts, "options": {"wait_for_model": True}}

    ##########################################
    ################# OTHER ##################
    ##########################################

    def extract_embeddings_from_response(self, response_data: dict | list) -> list[list[float]]:
        if isinstance(response_data, dict):
            raise ValueError(
                "HuggingFace response does not contain embeddings: %s" % response_data.get("error", list(response_data.keys()))
            )
        if not response_data or not response_data[0]:
            raise ValueError("HuggingFace response does not contain valid embeddings.")
        return response_data
