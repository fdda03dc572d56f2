"""
Intent classification for caller utterances.

The state machine only consumes a label and a confidence. Whatever produces
them sits behind IntentClassifier and is built once at start-up, then
injected into the voice dialog service. KeywordIntentClassifier is the
baseline shipped here: it scores word overlap against a handful of labelled
example utterances and abstains below a confidence floor, leaving the
keyword guards in the state handlers to decide.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

from ..config import INTENT_CLASSIFIER_ENABLED, INTENT_MIN_CONFIDENCE
from .parsers import tokenize

logger = logging.getLogger(__name__)


class IntentLabel:
    """Intent labels understood by the state machine."""
    START_ORDER = "order.start"
    ADD_ITEM = "order.add_item"
    MODIFY_ORDER = "order.modify"
    CANCEL_ORDER = "order.cancel"
    CHECK_STATUS = "order.check_status"
    COMPLETE_ORDER = "order.complete"
    AFFIRM = "dialog.affirm"
    NEGATE = "dialog.negate"
    GREETING = "smalltalk.greeting"
    FALLBACK = "fallback.unknown"


class IntentMetadataKeys:
    LABEL = "intent.label"
    CONFIDENCE = "intent.score"
    LAST_LABEL = "intent.last"


@dataclass(frozen=True)
class IntentPrediction:
    label: str | None
    confidence: float
    is_enabled: bool = True
    is_successful: bool = True

    @property
    def has_prediction(self) -> bool:
        return self.is_enabled and self.is_successful and bool(self.label)

    @classmethod
    def disabled(cls) -> "IntentPrediction":
        return cls(label=None, confidence=0.0, is_enabled=False, is_successful=False)

    @classmethod
    def abstained(cls, confidence: float = 0.0) -> "IntentPrediction":
        return cls(label=None, confidence=confidence, is_enabled=True, is_successful=False)


def intent_metadata(prediction: IntentPrediction) -> dict[str, str]:
    """Event metadata for a prediction; empty when the classifier abstained."""
    if not prediction.has_prediction:
        return {}
    return {
        IntentMetadataKeys.LABEL: prediction.label,
        IntentMetadataKeys.CONFIDENCE: f"{prediction.confidence:.3f}",
    }


class IntentClassifier(ABC):
    """Black-box label + confidence function. Implementations may do I/O."""

    @abstractmethod
    async def predict(self, utterance: str) -> IntentPrediction:
        ...


# Labelled examples for the baseline classifier
TRAINING_EXAMPLES: dict[str, tuple[str, ...]] = {
    IntentLabel.GREETING: (
        "hi", "hello", "hello there", "hey", "good evening", "good morning",
    ),
    IntentLabel.START_ORDER: (
        "i want to place an order", "i want to start an order", "start a new order",
        "i would like to order", "can i order takeaway", "new order please",
    ),
    IntentLabel.ADD_ITEM: (
        "add a pizza", "i would like a margherita", "can i get two pizzas",
        "add another one", "i want a large pizza with olives", "also a drink",
    ),
    IntentLabel.MODIFY_ORDER: (
        "change my order", "can i modify the order", "swap the pizza",
        "make it a large instead", "edit my order", "i need to change something",
    ),
    IntentLabel.CANCEL_ORDER: (
        "cancel my order", "i want to cancel", "please cancel the order",
        "cancel order", "i need to cancel my takeaway",
    ),
    IntentLabel.CHECK_STATUS: (
        "where is my order", "what is the status of my order", "is my order ready",
        "check my order status", "when will my order be ready",
    ),
    IntentLabel.COMPLETE_ORDER: (
        "that's all", "that's it", "i'm done", "place the order",
        "finish the order", "ready to pay",
    ),
    IntentLabel.AFFIRM: (
        "yes", "yes please", "yep", "correct", "sure", "go ahead", "do it", "that's right",
    ),
    IntentLabel.NEGATE: (
        "no", "no thanks", "nope", "not really", "wait", "hold on", "nevermind",
    ),
}


class KeywordIntentClassifier(IntentClassifier):
    """
    Baseline classifier: best word-overlap (Jaccard) against labelled examples.

    Deterministic and dependency-free, good enough to route the common
    openings. Below ``min_confidence`` it abstains.
    """

    def __init__(
        self,
        examples: dict[str, tuple[str, ...]] | None = None,
        min_confidence: float = INTENT_MIN_CONFIDENCE,
        enabled: bool = INTENT_CLASSIFIER_ENABLED,
    ):
        self.min_confidence = min_confidence
        self.enabled = enabled
        source = examples if examples is not None else TRAINING_EXAMPLES
        self._examples: list[tuple[str, frozenset[str]]] = [
            (label, frozenset(tokenize(text)))
            for label, texts in source.items()
            for text in texts
        ]
        logger.info(
            "Intent classifier ready: %d examples across %d labels (enabled=%s)",
            len(self._examples), len(source), enabled,
        )

    def score(self, utterance: str) -> tuple[str | None, float]:
        """Best (label, score) pair for an utterance, without applying the floor."""
        tokens = frozenset(tokenize(utterance))
        if not tokens:
            return None, 0.0

        best_label = None
        best_score = 0.0
        for label, example_tokens in self._examples:
            union = tokens | example_tokens
            if not union:
                continue
            score = len(tokens & example_tokens) / len(union)
            if score > best_score:
                best_label, best_score = label, score
        return best_label, best_score

    async def predict(self, utterance: str) -> IntentPrediction:
        if not self.enabled:
            return IntentPrediction.disabled()

        label, confidence = self.score(utterance)
        if label is None or confidence < self.min_confidence:
            logger.debug("Intent abstained for %r (best %.3f)", utterance, confidence)
            return IntentPrediction.abstained(confidence)
        return IntentPrediction(label=label, confidence=confidence)
