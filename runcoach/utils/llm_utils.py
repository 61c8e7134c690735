import google.generativeai as genai
from google.api_core import exceptions as google_exceptions
import openai
from openai import OpenAI
from runcoach.config import Config
import logging

# Configure logger
logger = logging.getLogger(__name__)

# Initialize Gemini (if key present)
if Config.GEMINI_API_KEY:
    genai.configure(api_key=Config.GEMINI_API_KEY)


class LLMError(Exception):
    """The model call failed or returned nothing usable."""


class LLMTimeout(LLMError):
    """The model call did not complete within the configured timeout."""


def _openai_messages(messages, system_instruction):
    openai_messages = []
    if system_instruction:
        openai_messages.append({"role": "system", "content": system_instruction})
    for msg in messages:
        if msg["role"] == "system" and system_instruction:
            continue
        openai_messages.append(msg)
    return openai_messages


def _openai_completion(client, model, messages, max_tokens):
    try:
        completion = client.chat.completions.create(
            model=model,
            messages=messages,
            max_completion_tokens=max_tokens,
        )
    except openai.APITimeoutError as e:
        raise LLMTimeout(f"{model} timed out: {e}") from e
    except openai.OpenAIError as e:
        raise LLMError(f"{model} request failed: {e}") from e

    if not completion.choices:
        raise LLMError(f"{model} returned no choices")
    usage = getattr(completion, "usage", None)
    if usage:
        logger.info(f"Token usage - prompt: {usage.prompt_tokens}, completion: {usage.completion_tokens}")
    return completion.choices[0].message.content


def generate_chat_response(messages, system_prompt=None, provider=None, model_name=None,
                           max_tokens=None, timeout=None):
    """
    Generate a completion from the configured LLM provider.

    Args:
        messages (list): List of message dictionaries with 'role' and 'content'.
        system_prompt (str): System instruction for the model.
        provider (str): Optional provider override ('openai', 'gemini', 'local').
        model_name (str): Optional model override.
        max_tokens (int): Completion token cap.
        timeout (float): Seconds before the call is abandoned.

    Returns:
        str: The generated text, never empty.

    Raises:
        LLMTimeout: the provider did not answer in time.
        LLMError: any other failure, including an empty completion.
    """
    if not provider:
        provider = Config.LLM_PROVIDER
    if timeout is None:
        timeout = Config.LLM_TIMEOUT_SECONDS
    if max_tokens is None:
        max_tokens = Config.PLAN_MAX_COMPLETION_TOKENS

    logger.info(f"Using LLM provider: {provider}")

    # --- LOCAL LLM (Llama.cpp via OpenAI API) ---
    if provider == "local":
        client = OpenAI(
            base_url=Config.LOCAL_LLM_URL,
            api_key="sk-no-key-required",
            timeout=timeout,
            max_retries=0,
        )
        model = model_name or Config.LOCAL_LLM_MODEL
        logger.info(f"Sending request to Local LLM at {Config.LOCAL_LLM_URL} ({model})...")
        content = _openai_completion(client, model, _openai_messages(messages, system_prompt), max_tokens)

    # --- OPENAI ---
    elif provider == "openai":
        if not Config.OPENAI_API_KEY:
            raise LLMError("OpenAI API Key missing.")
        client = OpenAI(api_key=Config.OPENAI_API_KEY, timeout=timeout, max_retries=0)
        model = model_name or Config.OPENAI_MODEL
        logger.info(f"Sending request to OpenAI ({model})...")
        content = _openai_completion(client, model, _openai_messages(messages, system_prompt), max_tokens)

    # --- GEMINI ---
    elif provider == "gemini":
        if not Config.GEMINI_API_KEY:
            raise LLMError("Gemini API Key missing.")
        model = genai.GenerativeModel(
            model_name=model_name or Config.GEMINI_MODEL,
            system_instruction=system_prompt,
        )
        contents = []
        for msg in messages:
            if msg["role"] == "system":
                continue
            gemini_role = "user" if msg["role"] == "user" else "model"
            contents.append({"role": gemini_role, "parts": [msg["content"]]})
        if not contents:
            raise LLMError("No messages provided.")

        logger.info(f"Sending request to Gemini ({model.model_name})...")
        try:
            response = model.generate_content(
                contents,
                generation_config={"max_output_tokens": max_tokens},
                request_options={"timeout": timeout},
            )
            content = response.text
        except google_exceptions.DeadlineExceeded as e:
            raise LLMTimeout(f"Gemini timed out: {e}") from e
        except (google_exceptions.GoogleAPIError, ValueError) as e:
            # ValueError: response.text on a blocked/empty candidate
            raise LLMError(f"Gemini request failed: {e}") from e

    else:
        raise LLMError(f"Unknown LLM Provider: {provider}")

    if not content or not content.strip():
        raise LLMError(f"{provider} returned empty content")
    return content
