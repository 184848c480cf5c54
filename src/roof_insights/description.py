"""Job description improvement for estimates.

Rewrites a roofer's rough job description into client-facing copy. The AI
path is used when an OpenAI key is configured; otherwise, or when the call
fails, a localized template produces the text.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any

import openai
import structlog
from pydantic import AliasChoices, BaseModel, Field, field_validator, model_validator

from roof_insights.clients import CompletionClient
from roof_insights.config import get_settings
from roof_insights.errors import ValidationError
from roof_insights.guards.sanitize import clean_text
from roof_insights.models import JobType, Locale, RoofType, to_amount

logger = structlog.get_logger(__name__)

MIN_DESCRIPTION_LEN = 5

JOB_TYPE_LABELS: dict[JobType, dict[Locale, str]] = {
    JobType.REPAIR: {Locale.ES: "Reparación de techo", Locale.EN: "Roof Repair"},
    JobType.REROOF: {Locale.ES: "Retecho completo", Locale.EN: "Complete Re-roof"},
    JobType.NEW_ROOF: {Locale.ES: "Techo nuevo", Locale.EN: "New Roof Installation"},
    JobType.GUTTERS: {Locale.ES: "Instalación de canaletas", Locale.EN: "Gutter Installation"},
    JobType.WATERPROOFING: {Locale.ES: "Impermeabilización", Locale.EN: "Waterproofing"},
    JobType.OTHER: {Locale.ES: "Trabajo de techo", Locale.EN: "Roofing Work"},
}

ROOF_TYPE_LABELS: dict[RoofType, dict[Locale, str]] = {
    RoofType.SHINGLE: {Locale.ES: "tejas asfálticas", Locale.EN: "asphalt shingles"},
    RoofType.TILE: {Locale.ES: "tejas de cerámica", Locale.EN: "tile roofing"},
    RoofType.METAL: {Locale.ES: "techo de metal", Locale.EN: "metal roofing"},
    RoofType.FLAT: {Locale.ES: "techo plano", Locale.EN: "flat roof system"},
    RoofType.OTHER: {Locale.ES: "sistema de techo", Locale.EN: "roofing system"},
}

SYSTEM_PROMPTS = {
    Locale.EN: (
        "You are a professional roofing estimator in the United States. Improve and "
        "complete the following job description to sound professional, clear, and "
        "detailed for the client. Use proper roofing terminology. Include details about "
        "materials, work process, and warranty if applicable. Do not invent prices. Keep "
        "a professional but approachable tone. Maximum 200 words."
    ),
    Locale.ES: (
        "Sos un presupuestista profesional de techos en Estados Unidos. Mejorá y completá "
        "la siguiente descripción de trabajo para que suene profesional, clara y detallada "
        "para el cliente. Mantené el español pero usá terminología técnica de roofing. "
        "Incluí detalles como materiales, proceso de trabajo y garantía si corresponde. No "
        "inventes precios. Mantené un tono profesional pero accesible. Máximo 200 palabras."
    ),
}

_TEMPLATES = {
    Locale.EN: """{job_label} - {roof_label} ({area})

{description}

Scope of work includes:
• Initial inspection of the work area
• Removal and proper disposal of existing materials as needed
• Installation of premium quality {roof_label}
• Complete site cleanup upon completion
• Workmanship warranty included

Note: Materials used will be from recognized brands (GAF, Owens Corning, or equivalent). \
All work complies with local building codes.""",
    Locale.ES: """{job_label} - {roof_label} ({area})

{description}

El trabajo incluye:
• Inspección inicial del área de trabajo
• Retiro y disposición de materiales existentes según corresponda
• Instalación de {roof_label} de primera calidad
• Limpieza completa del sitio al finalizar
• Garantía de mano de obra incluida

Nota: Los materiales utilizados serán de marcas reconocidas (GAF, Owens Corning o \
equivalente). Todos los trabajos cumplen con los códigos de construcción locales.""",
}

_AREA_UNKNOWN = {Locale.EN: "area to be confirmed", Locale.ES: "superficie a confirmar"}
_TOO_SHORT = {
    Locale.EN: "Write at least a brief description first",
    Locale.ES: "Escribí al menos una descripción breve",
}


class DescriptionBody(BaseModel):
    """JSON body of an improve-description request.

    Only ``description`` is required, and it is checked after cleaning in
    DescriptionRequest.from_body. Every other field is coerced to a default.
    """

    description: str = ""
    job_type: JobType = Field(default=JobType.OTHER, alias="jobType")
    roof_type: RoofType = Field(default=RoofType.OTHER, alias="roofType")
    square_footage: Decimal = Field(default=Decimal("0"), alias="squareFootage")
    language: Locale = Field(
        default=Locale.EN, validation_alias=AliasChoices("language", "lang")
    )

    @model_validator(mode="before")
    @classmethod
    def _object_or_empty(cls, data: Any) -> Any:
        return data if isinstance(data, dict) else {}

    @field_validator("description", mode="before")
    @classmethod
    def _description(cls, value: Any) -> str:
        return value if isinstance(value, str) else ""

    @field_validator("job_type", mode="before")
    @classmethod
    def _job_type(cls, value: Any) -> JobType:
        return JobType.coerce(value)

    @field_validator("roof_type", mode="before")
    @classmethod
    def _roof_type(cls, value: Any) -> RoofType:
        return RoofType.coerce(value)

    @field_validator("square_footage", mode="before")
    @classmethod
    def _square_footage(cls, value: Any) -> Decimal:
        return to_amount(value)

    @field_validator("language", mode="before")
    @classmethod
    def _language(cls, value: Any) -> Locale:
        return Locale(value)


@dataclass(frozen=True)
class DescriptionRequest:
    description: str
    job_type: JobType = JobType.OTHER
    roof_type: RoofType = RoofType.OTHER
    square_footage: Decimal = Decimal("0")
    locale: Locale = Locale.EN

    @classmethod
    def from_body(cls, body: DescriptionBody) -> "DescriptionRequest":
        """Clean and check the required description.

        Raises:
            ValidationError: The cleaned description is shorter than 5 characters.
        """
        description = clean_text(body.description, get_settings().description_max_len)
        if len(description) < MIN_DESCRIPTION_LEN:
            raise ValidationError(_TOO_SHORT[body.language], field="description")
        return cls(
            description=description,
            job_type=body.job_type,
            roof_type=body.roof_type,
            square_footage=body.square_footage,
            locale=body.language,
        )

    @classmethod
    def from_payload(cls, payload: Any) -> "DescriptionRequest":
        return cls.from_body(DescriptionBody.model_validate(payload))


@dataclass(frozen=True)
class DescriptionResult:
    improved: str
    source: str

    def to_dict(self) -> dict[str, str]:
        return {"improved": self.improved, "source": self.source}


def render_template(request: DescriptionRequest) -> str:
    """Deterministic localized rewrite of a job description."""
    locale = request.locale
    if request.square_footage > 0:
        area = f"{request.square_footage.normalize():f} sqft"
    else:
        area = _AREA_UNKNOWN[locale]
    return _TEMPLATES[locale].format(
        job_label=JOB_TYPE_LABELS[request.job_type][locale],
        roof_label=ROOF_TYPE_LABELS[request.roof_type][locale],
        area=area,
        description=request.description,
    )


def build_user_prompt(request: DescriptionRequest) -> str:
    area = f"{request.square_footage.normalize():f}"
    if request.locale is Locale.ES:
        return (
            f"Tipo de trabajo: {request.job_type.value}\n"
            f"Tipo de techo: {request.roof_type.value}\n"
            f"Superficie: {area} sqft\n\n"
            f'Descripción original del techista:\n"{request.description}"\n\n'
            "Mejorá esta descripción:"
        )
    return (
        f"Job type: {request.job_type.value}\n"
        f"Roof type: {request.roof_type.value}\n"
        f"Area: {area} sqft\n\n"
        f'Original roofer description:\n"{request.description}"\n\n'
        "Improve this description:"
    )


class DescriptionImprover:
    """Improves job descriptions through a completion client or the template."""

    def __init__(self, client: CompletionClient | None = None, max_tokens: int | None = None):
        self._client = client
        self._max_tokens = max_tokens or get_settings().description_max_tokens

    async def improve(self, request: DescriptionRequest) -> DescriptionResult:
        if self._client is not None:
            try:
                completion = await self._client.complete(
                    SYSTEM_PROMPTS[request.locale],
                    build_user_prompt(request),
                    max_tokens=self._max_tokens,
                )
            except openai.APIError as e:
                logger.warning("description_ai_failed", error=str(e))
            else:
                if completion.content:
                    return DescriptionResult(improved=completion.content, source="ai")
                logger.warning("description_ai_empty")

        return DescriptionResult(improved=render_template(request), source="template")
