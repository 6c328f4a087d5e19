"""
Typed shapes exchanged with the content-generation service.

Responses are validated here before anything else in the app sees them, and
the same models validate attachments on posts and saved items.  Field names
are snake_case in Python and camelCase on the wire.

The product-label card carries the one scoring rule we do not take on trust:
the overall risk is the highest ingredient risk, and the overall score is
capped by it (Hazardous ≤ 25, Moderate Risk ≤ 50, otherwise ≤ 100).
"""
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

RiskLevel = Literal["Risk-Free", "Low Risk", "Moderate Risk", "Hazardous"]

RISK_ORDER: dict[str, int] = {
    "Risk-Free":     0,
    "Low Risk":      1,
    "Moderate Risk": 2,
    "Hazardous":     3,
}

# Highest ingredient risk → maximum overall score
SCORE_CAPS: dict[str, int] = {
    "Risk-Free":     100,
    "Low Risk":      100,
    "Moderate Risk": 50,
    "Hazardous":     25,
}


class WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


# ── Recipes ───────────────────────────────────────────────────────────────────

class NutritionalInfo(WireModel):
    calories:            Optional[float] = None
    protein:             Optional[float] = None
    total_fat:           Optional[float] = None
    saturated_fat:       Optional[float] = None
    trans_fat:           Optional[float] = None
    cholesterol:         Optional[float] = None
    sodium:              Optional[float] = None
    total_carbohydrates: Optional[float] = None
    dietary_fiber:       Optional[float] = None
    total_sugars:        Optional[float] = None
    added_sugars:        Optional[float] = None


class IngredientCost(WireModel):
    name: str
    cost: float


class CostInfo(WireModel):
    total_cost:       Optional[float] = None
    ingredient_costs: Optional[List[IngredientCost]] = None


class Recipe(WireModel):
    title:                     str = Field(..., min_length=1)
    description:               Optional[str] = None
    ingredients:               List[str]
    instructions:              List[str]
    serving_size:              str
    nutritional_info:          Optional[NutritionalInfo] = None
    cost_info:                 Optional[CostInfo] = None
    missing_ingredients_count: Optional[int] = None
    image_url:                 Optional[str] = None


class GeneratedRecipes(WireModel):
    recipes: List[Recipe]


class BeverageRecipe(WireModel):
    title:        str = Field(..., min_length=1)
    description:  Optional[str] = None
    ingredients:  List[str]
    instructions: List[str]
    glassware:    str
    is_alcoholic: bool
    image_url:    Optional[str] = None


# ── Grocery lists ─────────────────────────────────────────────────────────────

class GroceryItem(WireModel):
    name:     str
    quantity: str
    cost:     Optional[float] = None


class GroceryCategory(WireModel):
    name:  str
    items: List[GroceryItem]


class GroceryList(WireModel):
    title:      str = Field(..., min_length=1)
    categories: List[GroceryCategory]
    total_cost: float
    currency:   str


# ── Product labels ────────────────────────────────────────────────────────────

class IngredientAnalysis(WireModel):
    name:        str
    risk:        RiskLevel
    explanation: str


def highest_risk(ingredients: List[IngredientAnalysis]) -> str:
    if not ingredients:
        return "Risk-Free"
    return max((i.risk for i in ingredients), key=RISK_ORDER.__getitem__)


def score_cap(risk: str) -> int:
    return SCORE_CAPS[risk]


class ProductLabelCard(WireModel):
    product_name:      str
    overall_score:     float
    overall_risk:      RiskLevel
    nutritional_score: float
    ingredient_score:  float
    summary:           str
    ingredients:       List[IngredientAnalysis]
    image_url:         Optional[str] = None

    @model_validator(mode="after")
    def _enforce_scoring(self):
        risk = highest_risk(self.ingredients)
        # A card that names no ingredients keeps the service's own risk label.
        if self.ingredients:
            self.overall_risk = risk
        cap = score_cap(self.overall_risk)
        self.overall_score = max(0.0, min(float(self.overall_score), float(cap)))
        self.nutritional_score = max(0.0, min(float(self.nutritional_score), 60.0))
        self.ingredient_score = max(0.0, min(float(self.ingredient_score), 40.0))
        return self


# ── Misc outputs ──────────────────────────────────────────────────────────────

class IdentifiedItems(WireModel):
    """What a photo shows: one finished meal, or a pile of ingredients."""
    is_meal: bool
    items:   List[str]


class SpeechOutput(WireModel):
    audio_data_uri: str = Field(..., min_length=1)


class ImageOutput(WireModel):
    image_url: str = Field(..., min_length=1)


class PostImageAnalysis(WireModel):
    """Suggested category, title and caption for a photo about to be posted."""
    category:    Literal["Meal", "Ingredients", "Product", "Grocery List", "Other"]
    title:       str
    description: str


# ── Post attachments ──────────────────────────────────────────────────────────

ATTACHMENT_SCHEMAS = {
    "recipe":          Recipe,
    "beverage_recipe": BeverageRecipe,
    "grocery_list":    GroceryList,
    "product_label":   ProductLabelCard,
}


class Attachment(BaseModel):
    """Tagged attachment: exactly one payload kind per post."""
    kind: Literal["recipe", "beverage_recipe", "grocery_list", "product_label"]
    data: dict

    @model_validator(mode="after")
    def _validate_payload(self):
        schema = ATTACHMENT_SCHEMAS[self.kind]
        self.data = schema.model_validate(self.data).to_wire()
        return self

    @property
    def title(self) -> str:
        return self.data.get("title") or self.data.get("productName") or ""

    @property
    def ingredient_lines(self) -> list[str]:
        items = self.data.get("ingredients") or []
        return [i if isinstance(i, str) else i.get("name", "") for i in items]
