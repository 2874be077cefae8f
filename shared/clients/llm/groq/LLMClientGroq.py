from shared.clients.llm.openai.LLMClientOpenai import LLMClientOpenai


class LLMClientGroq(LLMClientOpenai):
    """Groq speaks the OpenAI chat completion protocol under /openai."""

    def _get_engine_name(self) -> str:
        return "Groq"

    def _get_default_model(self) -> str:
        return "llama-3.1-8b-instant"

    def _get_default_base_url(self) -> str:
        return "https://api.groq.com/openai"
