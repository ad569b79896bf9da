# models.py
# Pydantic models + small helpers

import uuid
from datetime import datetime, timezone
from typing import List, Optional, Literal, Any

from pydantic import AliasChoices, BaseModel, Field, field_validator

Role = Literal["admin", "user"]
SpecialistType = Literal["general", "ibm_storage"]
AuditEntryType = Literal["PROPOSTA", "DOCUMENTO_APOIO", "CHAT_LOG"]
ChatRole = Literal["user", "model"]

PDF_MIME_TYPE = "application/pdf"

SPECIALIST_LABELS = {
    "general": "Consultor Geral",
    "ibm_storage": "IBM Storage IA Expert",
}


def new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# --- Users ---

class UserCreate(BaseModel):
    name: str
    email: str
    password: str
    role: Role = "user"


class User(UserCreate):
    id: str = Field(default_factory=new_id)


class UserPublic(BaseModel):
    id: str
    name: str
    email: str
    role: Role


class LoginRequest(BaseModel):
    email: str
    password: str


class LoginResponse(UserPublic):
    # sent back as the X-Session-Id header on every later request
    session_id: str


# --- AI analysis ---

LIST_FIELDS = (
    "keywords",
    "requisitos_tecnicos",
    "tecnologias_sugeridas",
    "fabricantes_aderentes",
    "atestados_exigidos",
)
TEXT_FIELDS = (
    "classification",
    "summary",
    "sla_exigido",
    "riscos_contratuais",
    "pontos_atencao_especialista",
)
ANALYSIS_FIELDS = TEXT_FIELDS + LIST_FIELDS


def _alias(snake: str, camel: str):
    return Field(None, validation_alias=AliasChoices(snake, camel))


class AnalysisFields(BaseModel):
    """Flattened findings extracted from a tender document.

    Every field is optional: ``None`` means the model did not return it.
    Validation accepts both the snake_case names used in storage and the
    camelCase keys of the AI response schema, and coerces loosely shaped
    values (a string where a list is expected, numbers). A blank value is
    kept as "" or [] so it still replaces an earlier finding.
    """

    classification: Optional[str] = None
    summary: Optional[str] = None
    keywords: Optional[List[str]] = None
    requisitos_tecnicos: Optional[List[str]] = _alias("requisitos_tecnicos", "requisitosTecnicos")
    tecnologias_sugeridas: Optional[List[str]] = _alias("tecnologias_sugeridas", "tecnologiasSugeridas")
    sla_exigido: Optional[str] = _alias("sla_exigido", "slaExigido")
    riscos_contratuais: Optional[str] = _alias("riscos_contratuais", "riscosContratuais")
    fabricantes_aderentes: Optional[List[str]] = _alias("fabricantes_aderentes", "fabricantesAderentes")
    atestados_exigidos: Optional[List[str]] = _alias("atestados_exigidos", "atestadosExigidos")
    pontos_atencao_especialista: Optional[str] = _alias(
        "pontos_atencao_especialista", "pontosAtencaoEspecialista"
    )

    @field_validator(*LIST_FIELDS, mode="before")
    @classmethod
    def _as_string_list(cls, v: Any):
        if v is None:
            return None
        if isinstance(v, str):
            return [v.strip()] if v.strip() else []
        if isinstance(v, (list, tuple)):
            items = [str(x).strip() for x in v if x is not None and str(x).strip()]
            return items
        return [str(v)]

    @field_validator(*TEXT_FIELDS, mode="before")
    @classmethod
    def _as_text(cls, v: Any):
        if v is None:
            return None
        if isinstance(v, (list, tuple)):
            v = "\n".join(str(x) for x in v if x is not None)
        v = str(v)
        return v if v.strip() else ""


class AnalysisResult(AnalysisFields):
    def provided(self) -> dict:
        """Fields the model actually returned."""
        return {k: v for k, v in self.model_dump().items() if v is not None}


# --- Projects ---

class ProjectFile(BaseModel):
    id: str = Field(default_factory=new_id)
    name: str
    size: int = 0
    type: str = PDF_MIME_TYPE
    upload_date: datetime = Field(default_factory=utcnow)
    text: str = ""


class AuditEntry(BaseModel):
    id: str = Field(default_factory=new_id)
    type: AuditEntryType
    title: str
    content: str = ""
    timestamp: datetime = Field(default_factory=utcnow)


class AnalysisProject(AnalysisFields):
    id: str = Field(default_factory=new_id)
    owner_id: str
    owner_email: str
    name: str
    create_date: datetime = Field(default_factory=utcnow)
    specialist: SpecialistType = "general"
    files: List[ProjectFile] = Field(default_factory=list)
    full_text: str = ""
    history: List[AuditEntry] = Field(default_factory=list)
    proposal_template: Optional[str] = None


class ProjectCreate(BaseModel):
    name: str
    specialist: SpecialistType = "general"


class UploadResult(BaseModel):
    project: AnalysisProject
    truncated: bool = False


# --- Chat ---

class ChatMessage(BaseModel):
    role: ChatRole
    content: str
    timestamp: datetime = Field(default_factory=utcnow)


class ChatTurn(BaseModel):
    role: ChatRole
    content: str


class ChatRequest(BaseModel):
    message: str
    history: List[ChatTurn] = Field(default_factory=list)


class ChatReply(BaseModel):
    reply: str


class HistoryAppend(BaseModel):
    type: AuditEntryType
    title: str
    content: str


class DocumentRequest(BaseModel):
    prompt: str


class GeneratedContent(BaseModel):
    content: str
    project: AnalysisProject


# --- Proposal ---

class ProposalItem(BaseModel):
    id: str = Field(default_factory=new_id)
    description: str = ""
    quantity: float = 1
    unit: str = "UN"
    brand: str = ""
    model: str = ""
    unit_price: float = 0


class CompanyInfo(BaseModel):
    name: str = ""
    cnpj: str = ""
    address: str = ""
    email: str = ""
    phone: str = ""
    representative: str = ""
    bank_info: str = ""


class TemplateUpdate(BaseModel):
    template: str


class ProposalRequest(BaseModel):
    company: CompanyInfo
    items: List[ProposalItem] = Field(default_factory=list)


class ExportRequest(BaseModel):
    content: str
    company_name: str = ""
