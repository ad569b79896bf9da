# projects.py
# Mutators for the project collection. Each one returns a new list with the
# affected project replaced in a single step; files and history only grow.

import logging
from typing import Iterable, List, Optional, Tuple

from .auth import is_admin
from .errors import InvalidFileError, NotFoundError, ValidationFailed
from .models import (
    PDF_MIME_TYPE,
    SPECIALIST_LABELS,
    AnalysisProject,
    AnalysisResult,
    AuditEntry,
    AuditEntryType,
    ChatMessage,
    ProjectFile,
    SpecialistType,
    User,
)

logger = logging.getLogger(__name__)

DEFAULT_ANALYSIS_MESSAGE = "Relatório gerado com sucesso."


def visible_projects(projects: List[AnalysisProject], user: Optional[User]) -> List[AnalysisProject]:
    if user is None:
        return []
    if is_admin(user):
        return list(projects)
    return [p for p in projects if p.owner_id == user.id]


def get_project(projects: List[AnalysisProject], project_id: str, user: Optional[User] = None) -> AnalysisProject:
    """Look a project up by id; when a user is given, hide projects they cannot see."""
    project = next((p for p in projects if p.id == project_id), None)
    if project is None or (user is not None and not is_admin(user) and project.owner_id != user.id):
        raise NotFoundError("Projeto não encontrado.")
    return project


def _replace(projects: List[AnalysisProject], updated: AnalysisProject) -> List[AnalysisProject]:
    return [updated if p.id == updated.id else p for p in projects]


def create_project(
    projects: List[AnalysisProject], name: str, specialist: SpecialistType, owner: User
) -> Tuple[List[AnalysisProject], AnalysisProject]:
    if not name or not name.strip():
        raise ValidationFailed("Informe a referência do cliente ou o número do edital.")
    project = AnalysisProject(
        owner_id=owner.id,
        owner_email=owner.email,
        name=name.strip(),
        specialist=specialist,
    )
    logger.info("Created project %s (%s) for %s", project.id, specialist, owner.id)
    return [project, *projects], project


def ingest_file(
    projects: List[AnalysisProject],
    project_id: str,
    file: ProjectFile,
    extracted_text: str,
    analysis: AnalysisResult,
) -> Tuple[List[AnalysisProject], AnalysisProject]:
    if file.type != PDF_MIME_TYPE:
        raise InvalidFileError()
    project = get_project(projects, project_id)

    stored_file = file.model_copy(update={"text": extracted_text})
    entry = AuditEntry(
        type="DOCUMENTO_APOIO",
        title=f"Análise Inicial: {file.name}",
        content=analysis.pontos_atencao_especialista or DEFAULT_ANALYSIS_MESSAGE,
    )
    full_text = f"{project.full_text}\n\n{extracted_text}" if project.full_text else extracted_text

    updated = project.model_copy(
        update={
            **analysis.provided(),
            "files": [*project.files, stored_file],
            "full_text": full_text,
            "history": [*project.history, entry],
        }
    )
    logger.info(
        "Ingested %s into project %s (%d chars, %d files)",
        file.name, project_id, len(extracted_text), len(updated.files),
    )
    return _replace(projects, updated), updated


def append_history(
    projects: List[AnalysisProject], project_id: str, entry_type: AuditEntryType, title: str, content: str
) -> Tuple[List[AnalysisProject], AnalysisProject]:
    project = get_project(projects, project_id)
    entry = AuditEntry(type=entry_type, title=title, content=content)
    updated = project.model_copy(update={"history": [*project.history, entry]})
    logger.info("Archived %s entry in project %s", entry_type, project_id)
    return _replace(projects, updated), updated


def set_proposal_template(
    projects: List[AnalysisProject], project_id: str, template: str
) -> Tuple[List[AnalysisProject], AnalysisProject]:
    project = get_project(projects, project_id)
    updated = project.model_copy(update={"proposal_template": template})
    return _replace(projects, updated), updated


def history_newest_first(project: AnalysisProject) -> List[AuditEntry]:
    return list(reversed(project.history))


def format_chat_transcript(messages: Iterable[ChatMessage], specialist: SpecialistType = "general") -> str:
    assistant = SPECIALIST_LABELS.get(specialist, SPECIALIST_LABELS["general"])
    lines = []
    for m in messages:
        speaker = "Usuário" if m.role == "user" else assistant
        lines.append(f"**{speaker}** ({m.timestamp:%d/%m/%Y %H:%M}):\n\n{m.content}\n")
    return "\n".join(lines)
