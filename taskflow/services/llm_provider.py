"""
LLM Provider - text-in/text-out generation through OpenAI-compatible APIs or Ollama
"""
from typing import Dict, Any, Optional
import httpx
from ..config import Settings, settings as default_settings
from ..utils.logging import get_logger

logger = get_logger(__name__)


class LLMProviderError(Exception):
    def __init__(self, message: str, rate_limited: bool = False) -> None:
        super().__init__(message)
        self.rate_limited = rate_limited


class LLMProvider:
    """Unified interface for different LLM providers"""

    def __init__(self, config: Optional[Settings] = None):
        self.config = config or default_settings
        self.provider = self._detect_provider()
        logger.info(f"Initialized LLM provider: {self.provider}")

    def _detect_provider(self) -> str:
        """Detect which LLM provider to use based on configuration"""
        if self.config.llm_provider.lower() == "ollama":
            return "ollama"
        if self.config.openai_api_key.startswith("gsk_"):
            return "groq"
        return "openai"

    async def generate_completion(
        self,
        prompt: str,
        system_prompt: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Generate completion using the configured provider

        Returns:
            {
                "content": str,
                "tokens_used": int,
                "model": str,
                "provider": str
            }
        """
        if self.provider == "ollama":
            return await self._ollama_completion(prompt, system_prompt)
        else:
            return await self._openai_compatible_completion(prompt, system_prompt)

    async def _ollama_completion(
        self,
        prompt: str,
        system_prompt: Optional[str]
    ) -> Dict[str, Any]:
        """Call Ollama API"""
        full_prompt = prompt
        if system_prompt:
            full_prompt = f"{system_prompt}\n\n{prompt}"

        try:
            async with httpx.AsyncClient(timeout=self.config.llm_timeout) as client:
                response = await client.post(
                    f"{self.config.ollama_base_url}/api/generate",
                    json={
                        "model": self.config.ollama_model,
                        "prompt": full_prompt,
                        "stream": False,
                        "options": {
                            "temperature": self.config.llm_temperature,
                            "num_predict": self.config.max_tokens
                        }
                    }
                )
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"Ollama API error: {e}")
            raise LLMProviderError(
                f"Ollama request failed: {e.response.status_code}",
                rate_limited=e.response.status_code == 429
            ) from e
        except httpx.HTTPError as e:
            logger.error(f"Ollama API error: {e}")
            raise LLMProviderError("Ollama is not reachable") from e

        return {
            "content": data.get("response", ""),
            "tokens_used": data.get("eval_count", 0) + data.get("prompt_eval_count", 0),
            "model": self.config.ollama_model,
            "provider": "ollama"
        }

    async def _openai_compatible_completion(
        self,
        prompt: str,
        system_prompt: Optional[str]
    ) -> Dict[str, Any]:
        """Call OpenAI-compatible API (OpenAI, Groq, Together, etc.)"""
        from openai import AsyncOpenAI, APIError, RateLimitError

        client = AsyncOpenAI(
            api_key=self.config.openai_api_key,
            base_url=self.config.openai_api_base,
            timeout=self.config.llm_timeout
        )

        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        try:
            response = await client.chat.completions.create(
                model=self.config.openai_model,
                messages=messages,
                max_tokens=self.config.max_tokens,
                temperature=self.config.llm_temperature
            )
        except RateLimitError as e:
            logger.error(f"LLM API rate limited: {e}")
            raise LLMProviderError("LLM API rate limited", rate_limited=True) from e
        except APIError as e:
            logger.error(f"LLM API error: {e}")
            raise LLMProviderError(f"LLM API failed: {e}") from e

        return {
            "content": response.choices[0].message.content or "",
            "tokens_used": response.usage.total_tokens if response.usage else 0,
            "model": response.model,
            "provider": self.provider
        }


class AiService:
    """Generation call behind the rate-guarded endpoint; failures become a readable reply"""

    RATE_LIMITED_REPLY = (
        "I'm currently overwhelmed with requests (Rate Limit Exceeded). "
        "Please try again in a minute."
    )

    def __init__(self, provider: Optional[LLMProvider] = None):
        self.provider = provider or get_llm_provider()

    async def generate_content(self, prompt: str) -> str:
        try:
            result = await self.provider.generate_completion(prompt)
        except LLMProviderError as e:
            if e.rate_limited:
                return self.RATE_LIMITED_REPLY
            return f"Error: Unable to generate response. {e}"

        return result["content"] or "No response from AI."


# Singleton instance
_llm_provider = None


def get_llm_provider() -> LLMProvider:
    """Get or create LLM provider singleton"""
    global _llm_provider
    if _llm_provider is None:
        _llm_provider = LLMProvider()
    return _llm_provider
