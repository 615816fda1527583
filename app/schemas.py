from typing import Any, Dict, List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

OpexFrequency = Literal["daily", "weekly", "monthly", "yearly"]
OnboardingMode = Literal["selection", "new", "existing"]
OPEX_FREQUENCY_VALUES = ("daily", "weekly", "monthly", "yearly")


class OnboardingSnapshotSchema(BaseModel):
    model_config = ConfigDict(extra="allow")
    mode: OnboardingMode
    step: int = Field(..., ge=1)
    maxReachedStep: int = Field(..., ge=1)
    formValues: Any = Field(default_factory=dict)
    updatedAt: Optional[str] = None


class OnboardingStatePayload(BaseModel):
    state: OnboardingSnapshotSchema


class OnboardingIngredientPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")
    name: str = Field(..., min_length=1)
    usageQuantity: float = Field(default=0, ge=0)
    usageUnit: str
    buyingQuantity: Optional[float] = None
    buyingUnit: Optional[str] = None
    buyingPrice: Optional[float] = None


class OnboardingMenuPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")
    name: Optional[str] = None
    category: Optional[str] = None
    description: Optional[str] = None
    estimatedCogs: float = 0
    suggestedPrice: float = 0
    ingredients: List[OnboardingIngredientPayload] = Field(default_factory=list)


class OnboardingOpexEntry(BaseModel):
    model_config = ConfigDict(extra="ignore")
    id: Optional[str] = None
    name: str
    amount: float = Field(default=0, ge=0)
    frequency: str = "monthly"


class OnboardingEquipmentEntry(BaseModel):
    model_config = ConfigDict(extra="ignore")
    id: Optional[str] = None
    name: str
    price: float = Field(default=0, ge=0)
    lifeYears: Optional[int] = None
    priority: Optional[str] = None


class OnboardingCompletePayload(BaseModel):
    businessName: Optional[str] = None
    businessType: Optional[str] = None
    city: Optional[str] = None
    operatingModel: Optional[str] = None
    openDays: Optional[List[int]] = None
    menuData: OnboardingMenuPayload = Field(default_factory=OnboardingMenuPayload)
    opexData: List[OnboardingOpexEntry] = Field(default_factory=list)
    equipmentData: List[OnboardingEquipmentEntry] = Field(default_factory=list)


class OpexCreatePayload(BaseModel):
    business_id: UUID
    name: str = Field(..., min_length=1, max_length=120)
    category: str = Field(default="other", max_length=40)
    amount: float = Field(..., ge=0)
    frequency: OpexFrequency = "monthly"
    is_active: bool = True
    notes: Optional[str] = Field(default=None, max_length=500)


class OpexUpdatePayload(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=120)
    category: Optional[str] = Field(default=None, max_length=40)
    amount: Optional[float] = Field(default=None, ge=0)
    frequency: Optional[OpexFrequency] = None
    is_active: Optional[bool] = None
    notes: Optional[str] = Field(default=None, max_length=500)


class OpexSummaryResponse(BaseModel):
    total_monthly: float
    by_category: Dict[str, float]
    items: List[Dict[str, Any]]
    opex_per_unit: Optional[float] = None


class OpexSuggestionRequest(BaseModel):
    business_name: Optional[str] = Field(default=None, max_length=120)
    business_type: Optional[str] = Field(default=None, max_length=60)
    description: Optional[str] = Field(default=None, max_length=1000)
    location: Optional[str] = Field(default=None, max_length=120)
    operating_model: Optional[str] = Field(default=None, max_length=60)
    team_size: Optional[str] = Field(default=None, max_length=60)
    target_daily_sales: Optional[int] = Field(default=None, ge=1, le=10000)


class OpexSuggestionItem(BaseModel):
    model_config = ConfigDict(extra="ignore")
    name: str = Field(..., min_length=1)
    estimated_amount: float = Field(default=0, ge=0)
    frequency: OpexFrequency = "monthly"

    @field_validator("frequency", mode="before")
    @classmethod
    def _coerce_frequency(cls, value: Any) -> str:
        if isinstance(value, str) and value.strip().lower() in OPEX_FREQUENCY_VALUES:
            return value.strip().lower()
        return "monthly"

    @model_validator(mode="before")
    @classmethod
    def _accept_amount_alias(cls, data: Any) -> Any:
        if isinstance(data, dict) and "estimated_amount" not in data and "amount" in data:
            data = dict(data)
            data["estimated_amount"] = data["amount"]
        return data


class OpexSuggestionResponse(BaseModel):
    typical_opex_categories: List[OpexSuggestionItem] = Field(default_factory=list)
    total_monthly: float = 0.0


EquipmentPriority = Literal["essential", "recommended", "optional"]
PriceConfidence = Literal["low", "medium", "high"]


class EquipmentSuggestionRequest(OpexSuggestionRequest):
    pass


class EquipmentSuggestionItem(BaseModel):
    model_config = ConfigDict(extra="ignore")
    name: str = Field(..., min_length=1)
    quantity: int = Field(default=1, ge=1)
    estimated_price: float = Field(default=0, ge=0)
    priority: EquipmentPriority = "recommended"

    @field_validator("priority", mode="before")
    @classmethod
    def _coerce_priority(cls, value: Any) -> str:
        if isinstance(value, str) and value.strip().lower() in ("essential", "recommended", "optional"):
            return value.strip().lower()
        return "recommended"

    @field_validator("quantity", mode="before")
    @classmethod
    def _coerce_quantity(cls, value: Any) -> Any:
        if value is None:
            return 1
        return value


class EquipmentSuggestionResponse(BaseModel):
    equipment: List[EquipmentSuggestionItem] = Field(default_factory=list)
    total_estimated_cost: float = 0.0


class PriceSuggestionRequest(BaseModel):
    ingredient_name: str = Field(..., min_length=1, max_length=120)
    category: Optional[str] = Field(default=None, max_length=60)
    current_price: Optional[float] = Field(default=None, ge=0)
    market_unit: str = Field(default="kg", min_length=1, max_length=20)
    location: Optional[str] = Field(default=None, max_length=120)

    @field_validator("ingredient_name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("ingredient_name must not be blank")
        return value


class PriceRange(BaseModel):
    min: float = Field(default=0, ge=0)
    max: float = Field(default=0, ge=0)

    @model_validator(mode="after")
    def _ordered(self) -> "PriceRange":
        if self.min > self.max:
            self.min, self.max = self.max, self.min
        return self


class PriceSuggestionResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")
    suggested_price: float = Field(..., ge=0)
    confidence: PriceConfidence = "low"
    reasoning: str = ""
    market_range: Optional[PriceRange] = None

    @field_validator("confidence", mode="before")
    @classmethod
    def _coerce_confidence(cls, value: Any) -> str:
        if isinstance(value, str) and value.strip().lower() in ("low", "medium", "high"):
            return value.strip().lower()
        return "low"

    @field_validator("reasoning", mode="before")
    @classmethod
    def _coerce_reasoning(cls, value: Any) -> str:
        return value if isinstance(value, str) else ""
