# ai_helpers.py
# Request builders for the generative-AI service + response parsing.
# call_openai is the only function that touches the network.

import json
import logging
import re
from typing import Any, Dict, List, Optional

import openai

from . import config
from .errors import AIServiceError
from .models import AnalysisResult, ChatTurn, SpecialistType

logger = logging.getLogger(__name__)

NO_REPLY_MESSAGE = "Sem resposta do assistente."

IBM_STORAGE_INSTRUCTION = """Você é o IBM Storage IA Expert, um Engenheiro de Sistemas Sênior IBM e Auditor de Licitações com inteligência artificial avançada.
Sua tarefa é analisar o Termo de Referência (TR) com CRITERIOSIDADE MÁXIMA e precisão técnica cirúrgica.

FOCO DA ANÁLISE:
1. SUGESTÃO DE SOLUÇÃO: Indique o modelo exato (ex: FlashSystem 5200, 7300, 9500) e licenças (Safeguarded Copy, FlashCopy).
2. PONTOS DE ATENÇÃO (RISCO DE DESCLASSIFICAÇÃO): Identifique requisitos técnicos que a IBM pode ter dificuldade ou que exigem plugins específicos.
3. GAPS TÉCNICOS: Onde a especificação do edital é ambígua ou restritiva demais.

FORMATAÇÃO: Use estritamente Markdown para tabelas e listas."""

GENERAL_INSTRUCTION = """Você é um Consultor Especialista em Licitações Públicas (Lei 14.133).
Analise o TR buscando cláusulas restritivas, prazos inexequíveis e requisitos de habilitação técnica.

FORMATAÇÃO: Use Markdown rico."""

PROPOSAL_INSTRUCTION = (
    "Você é um gestor comercial sênior. Sua missão é criar propostas técnicas e comerciais "
    "irrefutáveis, com formatação impecável em Markdown."
)

DOCUMENT_INSTRUCTION = "Gere documentos técnicos em Markdown baseados no edital fornecido."

PERSONAS = {
    "ibm_storage": "IBM Storage IA Expert",
    "general": "Consultor Especialista em Licitações Públicas",
}

_STRING = {"type": "string"}
_STRING_LIST = {"type": "array", "items": {"type": "string"}}

ANALYSIS_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "classification": _STRING,
        "summary": _STRING,
        "keywords": _STRING_LIST,
        "requisitosTecnicos": _STRING_LIST,
        "tecnologiasSugeridas": _STRING_LIST,
        "slaExigido": _STRING,
        "riscosContratuais": _STRING,
        "fabricantesAderentes": _STRING_LIST,
        "atestadosExigidos": _STRING_LIST,
        "pontosAtencaoEspecialista": {
            "type": "string",
            "description": "Markdown detalhando a sugestão de solução e os principais pontos de atenção "
                           "que podem desclassificar a proposta.",
        },
    },
    "required": [
        "classification", "summary", "keywords", "requisitosTecnicos", "tecnologiasSugeridas",
        "slaExigido", "riscosContratuais", "fabricantesAderentes", "atestadosExigidos",
        "pontosAtencaoEspecialista",
    ],
    "additionalProperties": False,
}

ANALYSIS_RESPONSE_FORMAT = {
    "type": "json_schema",
    "json_schema": {"name": "analysis_result", "schema": ANALYSIS_SCHEMA, "strict": True},
}


def truncate(text: Optional[str], limit: int) -> str:
    return (text or "")[:limit]


def is_truncated(text: Optional[str], limit: int) -> bool:
    return len(text or "") > limit


def analysis_profile(specialist: SpecialistType):
    """Return (model, system instruction) for a specialist tag."""
    if specialist == "ibm_storage":
        return config.OPENAI_PRO_MODEL, IBM_STORAGE_INSTRUCTION
    return config.OPENAI_MODEL, GENERAL_INSTRUCTION


def call_openai(model: str, system: str, messages: List[Dict[str, str]],
                response_format: Optional[Dict[str, Any]] = None) -> str:
    if not config.OPENAI_API_KEY:
        logger.error("OPENAI_API_KEY is not configured")
        raise AIServiceError("Serviço de IA não configurado.")
    openai.api_key = config.OPENAI_API_KEY
    kwargs: Dict[str, Any] = {
        "model": model,
        "messages": [{"role": "system", "content": system}, *messages],
    }
    if response_format:
        kwargs["response_format"] = response_format
    try:
        resp = openai.chat.completions.create(**kwargs)
    except openai.OpenAIError as e:
        logger.exception("OpenAI request failed (model=%s)", model)
        raise AIServiceError() from e
    if not resp.choices:
        return ""
    return resp.choices[0].message.content or ""


def parse_analysis(raw: Optional[str]) -> AnalysisResult:
    """Turn the model's JSON text into an AnalysisResult.

    An empty body yields an empty result; anything that is not a JSON
    object is rejected.
    """
    text = (raw or "").strip()
    if not text:
        logger.warning("Empty analysis response; returning empty result")
        return AnalysisResult()
    m = re.search(r"```(?:json)?\s*(.*?)\s*```", text, re.DOTALL)
    if m:
        text = m.group(1)
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        logger.error("Analysis response is not valid JSON: %s", text[:500])
        raise AIServiceError("Formato de resposta inesperado do serviço de IA.") from e
    if not isinstance(data, dict):
        raise AIServiceError("Formato de resposta inesperado do serviço de IA.")
    return AnalysisResult.model_validate(data)


def analyze_document(text: str, specialist: SpecialistType = "general") -> AnalysisResult:
    model, instruction = analysis_profile(specialist)
    if is_truncated(text, config.ANALYSIS_CHAR_LIMIT):
        logger.warning(
            "Document has %d chars; only the first %d are sent for analysis",
            len(text), config.ANALYSIS_CHAR_LIMIT,
        )
    prompt = (
        "Analise o seguinte documento e forneça um relatório técnico detalhado:\n\n"
        f"DOCUMENTO:\n{truncate(text, config.ANALYSIS_CHAR_LIMIT)}"
    )
    logger.info("Requesting %s analysis with %s", specialist, model)
    raw = call_openai(model, instruction, [{"role": "user", "content": prompt}], ANALYSIS_RESPONSE_FORMAT)
    return parse_analysis(raw)


def chat_with_data(history: List[ChatTurn], message: str, context: str,
                   specialist: SpecialistType = "general") -> str:
    instruction = (
        f"Você é o {PERSONAS.get(specialist, PERSONAS['general'])}.\n"
        "Use o contexto do edital abaixo para responder. Sempre use Markdown.\n\n"
        f"CONTEXTO:\n{truncate(context, config.CHAT_CONTEXT_CHAR_LIMIT)}"
    )
    messages = [
        {"role": "assistant" if turn.role == "model" else "user", "content": turn.content}
        for turn in history
    ]
    messages.append({"role": "user", "content": message})
    reply = call_openai(config.OPENAI_MODEL, instruction, messages)
    return reply if reply.strip() else NO_REPLY_MESSAGE


def generate_proposal_content(context: str, company_data: str, items_table: str,
                              custom_template: Optional[str] = None) -> str:
    prompt = (
        "Gere uma proposta comercial baseada nestes dados:\n"
        f"EMPRESA: {company_data}\n"
        f"ITENS: {items_table}\n"
        f"EDITAL: {truncate(context, config.PROPOSAL_CONTEXT_CHAR_LIMIT)}\n"
    )
    if custom_template:
        prompt += f"TEMPLATE CUSTOMIZADO: {custom_template}\n"
    prompt += (
        "\nResponda em Markdown. Se houver um TEMPLATE CUSTOMIZADO, siga rigorosamente a estrutura dele, "
        "substituindo os marcadores {{...}} pelos dados fornecidos."
    )
    return call_openai(config.OPENAI_PRO_MODEL, PROPOSAL_INSTRUCTION, [{"role": "user", "content": prompt}])


def generate_new_document(context: str, prompt: str) -> str:
    content = f"Contexto do Edital: {truncate(context, config.DOCUMENT_CONTEXT_CHAR_LIMIT)}\n\nPedido: {prompt}"
    return call_openai(config.OPENAI_PRO_MODEL, DOCUMENT_INSTRUCTION, [{"role": "user", "content": content}])
