"""
Model Invocation Adapter

Wraps one request/response cycle with the hosted language model:
- openai: OpenAI-compatible chat completions (choices-shaped replies)
- messages: Anthropic-style messages API (content-block replies)
- bedrock: AWS Bedrock InvokeModel through boto3

All replies are normalized into a ModelReply by the decoders in
``orchestration.decoders``.
"""

import asyncio
import json
import logging
from typing import Optional, Sequence

import boto3
import httpx
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError
from openai import AsyncOpenAI, OpenAIError

from .errors import ModelInvocationError, ParseError
from .models import ConversationTurn, ModelConfig, ModelReply
from .orchestration.decoders import decode_reply
from .orchestration.tool_defs import build_block_tools, build_function_tools
from .tools.registry import ToolManifest

logger = logging.getLogger(__name__)


class ModelClient:
    """Provider-independent model client; no retries."""

    def __init__(
        self,
        model_config: ModelConfig,
        http_client: Optional[httpx.AsyncClient] = None,
        openai_client: Optional[AsyncOpenAI] = None,
        bedrock_client=None,
    ):
        self.provider = model_config.provider
        self.model = model_config.model
        self.base_url = model_config.base_url
        self.max_tokens = model_config.max_tokens
        self.temperature = model_config.temperature
        self._api_key = model_config.api_key
        self._api_version = model_config.api_version
        self._timeout = model_config.timeout

        self._openai = openai_client
        self._http = http_client
        self._bedrock = bedrock_client
        self._owned: list = []

        if self.provider == "openai" and self._openai is None:
            self._openai = AsyncOpenAI(
                base_url=self.base_url,
                api_key=self._api_key or "not-needed",
                timeout=self._timeout,
                max_retries=0,
            )
            self._owned.append(self._openai)
        elif self.provider == "messages" and self._http is None:
            self._http = httpx.AsyncClient(timeout=self._timeout)
            self._owned.append(self._http)
        elif self.provider == "bedrock" and self._bedrock is None:
            self._bedrock = boto3.client(
                "bedrock-runtime",
                region_name=model_config.region,
                aws_access_key_id=model_config.aws_access_key_id or None,
                aws_secret_access_key=model_config.aws_secret_access_key or None,
                config=BotoConfig(
                    read_timeout=self._timeout, retries={"total_max_attempts": 1}
                ),
            )
            self._owned.append(self._bedrock)

    async def __aenter__(self) -> "ModelClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close clients created by this instance."""
        for client in self._owned:
            try:
                if isinstance(client, AsyncOpenAI):
                    await client.close()
                elif isinstance(client, httpx.AsyncClient):
                    await client.aclose()
                else:
                    client.close()
            except Exception as e:
                logger.debug("Error closing model client: %s", e)
        self._owned.clear()

    async def invoke(
        self,
        history: Sequence[ConversationTurn],
        system_prompt: str,
        tools: Optional[ToolManifest] = None,
    ) -> ModelReply:
        """
        Call the model once.

        Args:
            history: Conversation turns, replayed in order.
            system_prompt: Persona/system instructions.
            tools: Tool manifest to offer, or None/empty for a plain call.

        Returns:
            ModelReply with reasoning-stripped text and normalized tool calls.

        Raises:
            ModelInvocationError: On provider failure or an unreadable reply.
        """
        manifest = tools or ToolManifest()
        try:
            if self.provider == "messages":
                body = await self._invoke_messages(history, system_prompt, manifest)
            elif self.provider == "bedrock":
                body = await self._invoke_bedrock(history, system_prompt, manifest)
            else:
                body = await self._invoke_openai(history, system_prompt, manifest)
            return decode_reply(body)
        except ParseError as e:
            raise ModelInvocationError(f"Malformed model reply: {e}") from e

    async def _invoke_openai(
        self,
        history: Sequence[ConversationTurn],
        system_prompt: str,
        manifest: ToolManifest,
    ) -> dict:
        messages = [{"role": "system", "content": system_prompt}]
        messages.extend(turn.to_message() for turn in history)

        create_kwargs: dict = {
            "model": self.model,
            "messages": messages,
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }
        if manifest:
            create_kwargs["tools"] = build_function_tools(manifest)

        try:
            response = await self._openai.chat.completions.create(**create_kwargs)
        except OpenAIError as e:
            logger.error("Model call to %s failed: %s", self.base_url, e)
            raise ModelInvocationError(f"Model call failed: {e}") from e
        return response.model_dump()

    async def _invoke_messages(
        self,
        history: Sequence[ConversationTurn],
        system_prompt: str,
        manifest: ToolManifest,
    ) -> dict:
        body: dict = {
            "model": self.model,
            "system": system_prompt,
            "messages": [
                {"role": turn.role, "content": [{"type": "text", "text": turn.content}]}
                for turn in history
            ],
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
        }
        if manifest:
            body["tools"] = build_block_tools(manifest)

        headers = {
            "Content-Type": "application/json",
            "anthropic-version": self._api_version,
        }
        if self._api_key:
            headers["x-api-key"] = self._api_key

        url = f"{self.base_url.rstrip('/')}/messages"
        try:
            response = await self._http.post(url, json=body, headers=headers)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            detail = e.response.text[:300] if e.response.text else "No details"
            logger.error("Model API error: %s - %s", e.response.status_code, detail)
            raise ModelInvocationError(
                f"Model API returned {e.response.status_code}: {detail}"
            ) from e
        except httpx.HTTPError as e:
            logger.error("Model call to %s failed: %s", url, e)
            raise ModelInvocationError(f"Model call failed: {e}") from e
        except ValueError as e:
            raise ModelInvocationError(f"Model reply is not JSON: {e}") from e

    async def _invoke_bedrock(
        self,
        history: Sequence[ConversationTurn],
        system_prompt: str,
        manifest: ToolManifest,
    ) -> dict:
        # InvokeModel bodies carry no system field; the persona leads the turns.
        messages = [
            {"role": "user", "content": [{"type": "text", "text": system_prompt}]},
            {"role": "assistant", "content": [{"type": "text", "text": "Understood."}]},
        ]
        messages.extend(
            {"role": turn.role, "content": [{"type": "text", "text": turn.content}]}
            for turn in history
        )
        body: dict = {
            "messages": messages,
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
        }
        if manifest:
            body["tools"] = build_block_tools(manifest)

        try:
            response = await asyncio.to_thread(
                self._bedrock.invoke_model,
                modelId=self.model,
                body=json.dumps(body),
                contentType="application/json",
                accept="application/json",
            )
            raw = response["body"].read()
        except ClientError as e:
            error = e.response.get("Error", {})
            logger.error(
                "Bedrock error for %s: %s - %s",
                self.model,
                error.get("Code", "Unknown"),
                error.get("Message", ""),
            )
            raise ModelInvocationError(f"Bedrock call failed: {e}") from e
        except BotoCoreError as e:
            logger.error("Bedrock call for %s failed: %s", self.model, e)
            raise ModelInvocationError(f"Bedrock call failed: {e}") from e

        logger.debug("Raw Bedrock reply: %s", raw[:500])
        try:
            return json.loads(raw)
        except ValueError as e:
            raise ModelInvocationError(f"Model reply is not JSON: {e}") from e
