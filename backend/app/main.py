# main.py
import logging
from contextlib import asynccontextmanager
from typing import List, Optional
from urllib.parse import quote

from fastapi import Depends, FastAPI, File, Header, Request, Response, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import ai_helpers, auth, config, documents, models, proposals, storage
from . import projects as project_ops
from .errors import AppError, AuthError, InvalidFileError, PermissionDenied, ValidationFailed

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler()],
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # seeds the bootstrap admin on first boot
    users, projects = storage.load()
    logger.info("Loaded %d users and %d projects from %s", len(users), len(projects), config.DATA_DIR)
    yield


app = FastAPI(title="GovTech TR Analyzer API (JSON storage)", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


# --- session ---

def current_user(x_session_id: Optional[str] = Header(None)) -> models.User:
    user = auth.session_user(storage.load_users(), x_session_id)
    if user is None:
        raise AuthError("Sessão inválida. Faça login novamente.")
    return user


def admin_user(user: models.User = Depends(current_user)) -> models.User:
    if not auth.is_admin(user):
        raise PermissionDenied()
    return user


@app.get("/health")
def health():
    return {"status": "ok", "ai_configured": bool(config.OPENAI_API_KEY)}


@app.post("/api/v1/auth/login", response_model=models.LoginResponse)
def login(body: models.LoginRequest):
    user = auth.login(storage.load_users(), body.email, body.password)
    return models.LoginResponse(**user.model_dump(exclude={"password"}), session_id=auth.start_session(user))


@app.post("/api/v1/auth/logout")
def logout(x_session_id: Optional[str] = Header(None)):
    auth.end_session(x_session_id)
    return {"status": "logged_out"}


# --- User management (admin) ---

@app.get("/api/v1/users", response_model=List[models.UserPublic])
def list_users(admin: models.User = Depends(admin_user)):
    return storage.load_users()


@app.post("/api/v1/users", response_model=models.UserPublic, status_code=201)
def create_user(body: models.UserCreate, admin: models.User = Depends(admin_user)):
    users, user = auth.add_user(storage.load_users(), body)
    storage.save_users(users)
    return user


@app.delete("/api/v1/users/{user_id}")
def delete_user(user_id: str, confirm: bool = False, admin: models.User = Depends(admin_user)):
    users = storage.load_users()
    remaining = auth.delete_user(users, user_id, confirmed=confirm)
    storage.save_users(remaining)
    return {"status": "deleted", "removed": len(users) - len(remaining)}


# --- Projects ---

@app.get("/api/v1/projects", response_model=List[models.AnalysisProject])
def list_projects(user: models.User = Depends(current_user)):
    return project_ops.visible_projects(storage.load_projects(), user)


@app.post("/api/v1/projects", response_model=models.AnalysisProject, status_code=201)
def create_project(body: models.ProjectCreate, user: models.User = Depends(current_user)):
    projects, project = project_ops.create_project(storage.load_projects(), body.name, body.specialist, user)
    storage.save_projects(projects)
    return project


@app.get("/api/v1/projects/{project_id}", response_model=models.AnalysisProject)
def get_project(project_id: str, user: models.User = Depends(current_user)):
    return project_ops.get_project(storage.load_projects(), project_id, user)


@app.post("/api/v1/projects/{project_id}/files", response_model=models.UploadResult)
def upload_project_file(project_id: str, file: UploadFile = File(...),
                        user: models.User = Depends(current_user)):
    project = project_ops.get_project(storage.load_projects(), project_id, user)
    if file.content_type != models.PDF_MIME_TYPE:
        raise InvalidFileError()

    data = file.file.read()
    text = documents.extract_text_from_pdf(data, file.filename)
    analysis = ai_helpers.analyze_document(text, project.specialist)

    project_file = models.ProjectFile(name=file.filename, size=len(data), type=file.content_type)
    # re-read so the write is based on the latest stored collection
    projects, updated = project_ops.ingest_file(storage.load_projects(), project_id, project_file, text, analysis)
    storage.save_projects(projects)
    return models.UploadResult(
        project=updated,
        truncated=ai_helpers.is_truncated(text, config.ANALYSIS_CHAR_LIMIT),
    )


@app.post("/api/v1/projects/{project_id}/chat", response_model=models.ChatReply)
def chat(project_id: str, body: models.ChatRequest, user: models.User = Depends(current_user)):
    if not body.message.strip():
        raise ValidationFailed("Digite uma pergunta.")
    project = project_ops.get_project(storage.load_projects(), project_id, user)
    reply = ai_helpers.chat_with_data(body.history, body.message, project.full_text, project.specialist)
    return models.ChatReply(reply=reply)


@app.post("/api/v1/projects/{project_id}/history", response_model=models.AnalysisProject)
def append_history(project_id: str, body: models.HistoryAppend, user: models.User = Depends(current_user)):
    projects = storage.load_projects()
    project_ops.get_project(projects, project_id, user)
    projects, updated = project_ops.append_history(projects, project_id, body.type, body.title, body.content)
    storage.save_projects(projects)
    return updated


@app.post("/api/v1/projects/{project_id}/documents", response_model=models.GeneratedContent)
def generate_document(project_id: str, body: models.DocumentRequest, user: models.User = Depends(current_user)):
    if not body.prompt.strip():
        raise ValidationFailed("Descreva o documento a ser gerado.")
    project = project_ops.get_project(storage.load_projects(), project_id, user)
    content = ai_helpers.generate_new_document(project.full_text, body.prompt)

    title = f"Gerado: {body.prompt[:30]}..."
    projects, updated = project_ops.append_history(
        storage.load_projects(), project_id, "DOCUMENTO_APOIO", title, content
    )
    storage.save_projects(projects)
    return models.GeneratedContent(content=content, project=updated)


@app.put("/api/v1/projects/{project_id}/template", response_model=models.AnalysisProject)
def update_template(project_id: str, body: models.TemplateUpdate, user: models.User = Depends(current_user)):
    projects = storage.load_projects()
    project_ops.get_project(projects, project_id, user)
    projects, updated = project_ops.set_proposal_template(projects, project_id, body.template)
    storage.save_projects(projects)
    return updated


@app.post("/api/v1/projects/{project_id}/template/file", response_model=models.AnalysisProject)
def upload_template(project_id: str, file: UploadFile = File(...), user: models.User = Depends(current_user)):
    projects = storage.load_projects()
    project_ops.get_project(projects, project_id, user)
    template = documents.read_template_upload(file.file.read(), file.filename, file.content_type or "")
    projects, updated = project_ops.set_proposal_template(projects, project_id, template)
    storage.save_projects(projects)
    return updated


# --- Proposal ---

@app.post("/api/v1/projects/{project_id}/proposal", response_model=models.GeneratedContent)
def generate_proposal(project_id: str, body: models.ProposalRequest, user: models.User = Depends(current_user)):
    if not body.company.name.strip():
        raise ValidationFailed("Informe a razão social da proponente.")
    project = project_ops.get_project(storage.load_projects(), project_id, user)
    items = body.items or proposals.default_items(project)

    content = ai_helpers.generate_proposal_content(
        project.full_text,
        proposals.format_company(body.company),
        proposals.format_items(items),
        proposals.template_for(project),
    )
    projects, updated = project_ops.append_history(
        storage.load_projects(), project_id, "PROPOSTA", proposals.proposal_title(body.company), content
    )
    storage.save_projects(projects)
    return models.GeneratedContent(content=content, project=updated)


@app.post("/api/v1/proposals/export")
def export_proposal(body: models.ExportRequest, user: models.User = Depends(current_user)):
    filename = proposals.export_filename(body.company_name)
    return Response(
        content=proposals.export_word_document(body.content),
        media_type=proposals.WORD_MEDIA_TYPE,
        headers={"Content-Disposition": f"attachment; filename*=UTF-8''{quote(filename)}"},
    )
