"""
Pydantic models for the voice dialog.

- DialogState / DialogEvent / DialogResult: what goes in and out of the
  state machine on every turn.
- MenuSnapshot: the read-only menu projection used to ground a single turn.
- SlotSnapshot: the five order slots as plain data, so a transport layer can
  hand them back on the next request.
"""

from datetime import datetime
from enum import Enum
from pydantic import BaseModel, Field


class DialogState(str, Enum):
    """Conversation states. START is initial; COMPLETED and CANCELLED are terminal."""
    START = "Start"
    ORDERING = "Ordering"
    MODIFYING = "Modifying"
    CANCELLING = "Cancelling"
    CHECKING_STATUS = "CheckingStatus"
    CONFIRMING = "Confirming"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"
    ERROR = "Error"

    @property
    def is_terminal(self) -> bool:
        return self in (DialogState.COMPLETED, DialogState.CANCELLED)


class DialogEventType(str, Enum):
    UTTERANCE = "Utterance"
    SYSTEM = "System"  # wake a session / merge metadata without new speech
    TIMEOUT = "Timeout"  # caller went quiet


class DialogEvent(BaseModel):
    """Input to the state machine for one turn."""
    type: DialogEventType = DialogEventType.UTTERANCE
    utterance_text: str | None = None
    metadata: dict[str, str] = Field(default_factory=dict)

    @classmethod
    def utterance(cls, text: str, metadata: dict[str, str] | None = None) -> "DialogEvent":
        return cls(type=DialogEventType.UTTERANCE, utterance_text=text, metadata=metadata or {})

    @classmethod
    def system(cls, metadata: dict[str, str] | None = None) -> "DialogEvent":
        return cls(type=DialogEventType.SYSTEM, metadata=metadata or {})

    @classmethod
    def timeout(cls) -> "DialogEvent":
        return cls(type=DialogEventType.TIMEOUT)


# =============================================================================
# Menu snapshot
# =============================================================================

class MenuVariant(BaseModel):
    id: int
    name: str
    is_default: bool = False


class MenuModifier(BaseModel):
    id: int
    name: str


class MenuProduct(BaseModel):
    """An available product as seen by the slot extractor."""
    id: int
    name: str
    variants: list[MenuVariant] = Field(default_factory=list)
    modifiers: list[MenuModifier] = Field(default_factory=list)

    @property
    def requires_variant(self) -> bool:
        """A variant must be chosen only when there is more than one to choose from."""
        return len(self.variants) > 1

    @property
    def default_variant(self) -> MenuVariant | None:
        for variant in self.variants:
            if variant.is_default:
                return variant
        return None

    def find_variant(self, variant_id: int) -> MenuVariant | None:
        return next((v for v in self.variants if v.id == variant_id), None)


class MenuSnapshot(BaseModel):
    """Products currently available for ordering, rebuilt from the catalog each turn."""
    products: list[MenuProduct] = Field(default_factory=list)

    def sorted_products(self) -> list[MenuProduct]:
        return sorted(self.products, key=lambda p: p.name.lower())

    def find_product(self, product_id: int) -> MenuProduct | None:
        return next((p for p in self.products if p.id == product_id), None)


# =============================================================================
# Slot snapshot
# =============================================================================

class ProductSlotSnapshot(BaseModel):
    product_id: int | None = None
    name: str | None = None
    is_filled: bool = False


class VariantSlotSnapshot(BaseModel):
    variant_id: int | None = None
    name: str | None = None
    product_id: int | None = None
    is_filled: bool = False


class QuantitySlotSnapshot(BaseModel):
    quantity: int | None = None
    is_filled: bool = False


class ModifierSelectionSnapshot(BaseModel):
    modifier_id: int
    name: str
    product_id: int


class ModifiersSlotSnapshot(BaseModel):
    selections: list[ModifierSelectionSnapshot] = Field(default_factory=list)
    is_filled: bool = False
    is_explicit_none: bool = False


class PickupTimeSlotSnapshot(BaseModel):
    value: datetime | None = None
    is_filled: bool = False


class SlotSnapshot(BaseModel):
    """Plain-data copy of the slot set, safe to round-trip through a client."""
    product: ProductSlotSnapshot = Field(default_factory=ProductSlotSnapshot)
    variant: VariantSlotSnapshot = Field(default_factory=VariantSlotSnapshot)
    quantity: QuantitySlotSnapshot = Field(default_factory=QuantitySlotSnapshot)
    modifiers: ModifiersSlotSnapshot = Field(default_factory=ModifiersSlotSnapshot)
    pickup_time: PickupTimeSlotSnapshot = Field(default_factory=PickupTimeSlotSnapshot)


# =============================================================================
# Turn result
# =============================================================================

class DialogResult(BaseModel):
    """What the state machine hands back to the transport for one turn."""
    state: DialogState
    prompt_text: str
    is_session_complete: bool = False
    metadata: dict[str, str] = Field(default_factory=dict)
    slots: SlotSnapshot = Field(default_factory=SlotSnapshot)
