import logging

import httpx
from openai import AsyncOpenAI

DEFAULT_TIMEOUT = 60.0


class LLMAPI:
    def __init__(self, llm_config) -> None:
        self.llm_config = llm_config
        self.api_type = self.llm_config.get("api")
        self.model = self.llm_config.get("model")
        self.timeout = float(self.llm_config.get("timeout", DEFAULT_TIMEOUT))
        self.client = None
        self._client = None  # httpx client shared with the OpenAI SDK

    async def initialize(self):
        if self.api_type == "openai":
            self.api_key = self.llm_config.get("api_key")
            if not self.api_key:
                raise ValueError("API key is empty. OpenAI client not initialized.")
            self.base_url = self.llm_config.get("base_url")
            http_client = await self._get_client()
            if self.base_url:
                self.client = AsyncOpenAI(api_key=self.api_key, base_url=self.base_url, http_client=http_client)
            else:
                self.client = AsyncOpenAI(api_key=self.api_key, http_client=http_client)
            logging.info(f"AsyncOpenAI client initialized. Model: {self.model}, base URL: {self.base_url}")
        else:
            raise ValueError("Invalid API type or missing credentials. LLM client not initialized.")

        return self

    async def _get_client(self):
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def get_llm_response(self, system_prompt, prompt, images=None):
        """Send one chat completion request and return the cleaned text.

        ``prompt`` is either plain text or a list of OpenAI content parts
        (text and image_url entries) used as the user message as-is.
        """
        if self.api_type == "openai" and self.client is None:
            await self.initialize()

        try:
            messages = self._create_messages(system_prompt, prompt)
            if images:
                self._handle_images_openai(messages, images)
            return await self._call_openai(messages)
        except Exception as e:
            logging.error(f"LLMAPI.get_llm_response encountered error: {e}")
            raise

    def _create_messages(self, system_prompt, prompt):
        if self.api_type != "openai":
            raise ValueError("Invalid api_type. Choose 'openai'.")
        if isinstance(prompt, list):
            user_content = list(prompt)
        else:
            user_content = [{"type": "text", "text": prompt}]
        return [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_content},
        ]

    def _handle_images_openai(self, messages, images):
        """Helper to append image data to messages for OpenAI."""
        if isinstance(images, str):
            images = [images]
        if not isinstance(images, list):
            raise ValueError("Invalid type for 'images'. Expected a base64 string or a list of base64 strings.")
        for image_base64 in images:
            image_message = {"type": "image_url", "image_url": {"url": image_base64, "detail": "low"}}
            messages[1]["content"].append(image_message)

    async def _call_openai(self, messages):
        params = {
            "model": self.model,
            "messages": messages,
            "timeout": self.timeout,
            "temperature": self.llm_config.get("temperature", 0.0),
        }
        if self.llm_config.get("top_p") is not None:
            params["top_p"] = self.llm_config["top_p"]
        try:
            completion = await self.client.chat.completions.create(**params)
            content = completion.choices[0].message.content
            return self._clean_response(content)
        except Exception as e:
            logging.error(f"Error while calling OpenAI API: {e}")
            raise ValueError(f"{str(e)}")

    def _clean_response(self, response):
        """Remove JSON code block markers from the response if present."""
        if response and isinstance(response, str):
            stripped = response.strip()
            if stripped.startswith("```json") and stripped.endswith("```"):
                logging.debug("Cleaning response: Removing ```json``` markers")
                return stripped[7:-3].strip()
            elif stripped.startswith("```") and stripped.endswith("```"):
                logging.debug("Cleaning response: Removing ``` markers")
                return stripped[3:-3].strip()
        return response

    async def close(self):
        if self._client:
            await self._client.aclose()
            self._client = None
        self.client = None
