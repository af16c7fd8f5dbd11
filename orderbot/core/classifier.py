import json
import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import requests

from orderbot import config
from orderbot.core.prompts import SYSTEM_PROMPT, build_user_prompt

logger = logging.getLogger(__name__)

JSON_OBJECT_PATTERN = re.compile(r"\{[\s\S]*\}")

NO_JSON_REPLY = "Terima kasih atas pesan Anda."
API_ERROR_REPLY = "Pesan Anda telah kami terima."


class OrderType(Enum):
    NEW_ORDER = "new_order"
    UPDATE = "update"
    CANCEL = "cancel"
    INQUIRY = "inquiry"
    TEST = "test"


class FallbackReason(Enum):
    """Why a ClassificationResult holds default values instead of model output."""
    NO_JSON = "no_json"
    INVALID_JSON = "invalid_json"
    API_ERROR = "api_error"


@dataclass(frozen=True)
class ClassificationResult:
    order_type: OrderType
    confidence: float
    extracted_info: str
    suggested_reply: str
    fallback: Optional[FallbackReason] = None

    @property
    def is_fallback(self):
        return self.fallback is not None

    def to_dict(self):
        return {
            "orderType": self.order_type.value,
            "confidence": self.confidence,
            "extractedInfo": self.extracted_info,
            "suggestedReply": self.suggested_reply,
        }


def default_result(message, reason):
    """Client-side default used whenever the model answer can't be used."""
    if reason is FallbackReason.API_ERROR:
        return ClassificationResult(OrderType.INQUIRY, 0.0, message, API_ERROR_REPLY, reason)
    return ClassificationResult(OrderType.INQUIRY, 0.5, message, NO_JSON_REPLY, reason)


def parse_classification(content, message):
    """Pull the first {...} block out of free-form model text."""
    match = JSON_OBJECT_PATTERN.search(content) if isinstance(content, str) else None
    if not match:
        return default_result(message, FallbackReason.NO_JSON)

    try:
        data = json.loads(match.group(0))
    except ValueError:
        logger.warning("Classifier returned malformed JSON: %s", content[:200])
        return default_result(message, FallbackReason.INVALID_JSON)
    if not isinstance(data, dict):
        return default_result(message, FallbackReason.INVALID_JSON)

    try:
        order_type = OrderType(data.get("orderType", OrderType.INQUIRY.value))
    except ValueError:
        order_type = OrderType.INQUIRY

    try:
        confidence = min(max(float(data.get("confidence", 0.5)), 0.0), 1.0)
    except (TypeError, ValueError):
        confidence = 0.5

    return ClassificationResult(
        order_type=order_type,
        confidence=confidence,
        extracted_info=str(data.get("extractedInfo") or message),
        suggested_reply=str(data.get("suggestedReply") or NO_JSON_REPLY),
    )


class OrderClassifier:
    """Classifies order messages through an OpenAI-compatible chat endpoint.

    classify() never raises: transport, HTTP and envelope errors all come
    back as a ClassificationResult with fallback=API_ERROR so a dead LLM
    never blocks order intake.
    """

    def __init__(self, api_key=None, api_url=None, model=None, timeout=None, session=None):
        self.api_key = config.OPENAI_API_KEY if api_key is None else api_key
        self.api_url = api_url or config.CLASSIFIER_API_URL
        self.model = model or config.CLASSIFIER_MODEL
        self.timeout = timeout or config.CLASSIFIER_TIMEOUT
        self.session = session or requests.Session()

    def build_payload(self, message, user_id, username):
        return {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": build_user_prompt(message, user_id, username)},
            ],
            "temperature": 0.3,
            "max_tokens": 500,
        }

    def classify(self, message, user_id, username) -> ClassificationResult:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        try:
            response = self.session.post(
                self.api_url,
                json=self.build_payload(message, user_id, username),
                headers=headers,
                timeout=self.timeout,
            )
            response.raise_for_status()
            content = response.json()["choices"][0]["message"]["content"]
        except requests.RequestException as e:
            logger.error("Classifier request failed: %s", e)
            return default_result(message, FallbackReason.API_ERROR)
        except (ValueError, KeyError, IndexError, TypeError) as e:
            logger.error("Unexpected classifier response: %s", e)
            return default_result(message, FallbackReason.API_ERROR)

        result = parse_classification(content, message)
        if result.is_fallback:
            logger.info("Classifier fallback (%s) for user %s", result.fallback.value, user_id)
        return result
