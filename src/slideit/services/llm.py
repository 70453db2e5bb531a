from typing import Any, Optional

from langchain_openai import ChatOpenAI

from slideit.core.config import settings


def get_chat(
    model: Optional[str] = None,
    temperature: Optional[float] = None,
    required: bool = True,
) -> Optional[Any]:
    """
    Return a ChatOpenAI instance or None.
    - Works against any OpenAI-compatible endpoint (set OPENAI_BASE_URL).
    - If `required` is True and no key is available, raise a RuntimeError.
    - The model is asked for a JSON object; callers unwrap the slide array.
    """
    key = settings.OPENAI_API_KEY
    if not key:
        if required:
            raise RuntimeError("OPENAI_API_KEY is not set")
        return None

    kwargs: dict = {}
    if settings.OPENAI_BASE_URL:
        kwargs["base_url"] = settings.OPENAI_BASE_URL
    return ChatOpenAI(
        model=model or settings.LLM_MODEL,
        temperature=settings.LLM_TEMPERATURE if temperature is None else temperature,
        api_key=key,
        timeout=settings.LLM_TIMEOUT_SEC,
        model_kwargs={"response_format": {"type": "json_object"}},
        **kwargs,
    )
