# Streamlit UI that talks to the FastAPI backend
import os

import requests
import streamlit as st
from dotenv import load_dotenv

from backend.app import session
from backend.app.models import SPECIALIST_LABELS, AnalysisProject, LoginResponse, UserPublic
from backend.app.projects import format_chat_transcript, history_newest_first
from backend.app.proposals import (
    DEFAULT_TEMPLATE,
    default_items,
    export_filename,
    has_custom_template,
    items_from_rows,
    items_total,
)

load_dotenv()

API = os.getenv("API_URL", "http://localhost:5000")

TAB_LABELS = {
    "analysis": "Inteligência",
    "chat": "Consultor IA",
    "proposal": "Proposta",
    "admin": "Gestão de Acessos",
}
ENTRY_LABELS = {
    "PROPOSTA": "Proposta",
    "DOCUMENTO_APOIO": "Documento de apoio",
    "CHAT_LOG": "Conversa",
}

st.set_page_config(page_title="GovTech TR Analyzer", layout="wide")

if "app_state" not in st.session_state:
    st.session_state.app_state = session.AppState()


def state() -> session.AppState:
    return st.session_state.app_state


def dispatch(new_state: session.AppState):
    st.session_state.app_state = new_state


def api(method: str, path: str, **kwargs) -> requests.Response:
    headers = kwargs.pop("headers", {})
    if state().session_id:
        headers["X-Session-Id"] = state().session_id
    return requests.request(method, f"{API}{path}", headers=headers, **kwargs)


def error_text(r: requests.Response) -> str:
    try:
        return r.json().get("detail", r.text)
    except ValueError:
        return r.text


def load_projects():
    r = api("GET", "/api/v1/projects")
    if r.status_code == 401:
        # backend restarted or session dropped
        dispatch(session.logged_out(state()))
        st.rerun()
    if not r.ok:
        st.error(error_text(r))
        return []
    return [AnalysisProject.model_validate(p) for p in r.json()]


# --- Login ---

def login_view():
    st.title("GovTech TR Analyzer")
    with st.form("login"):
        email = st.text_input("Login", placeholder="Seu login de acesso")
        password = st.text_input("Senha", type="password")
        if st.form_submit_button("Autenticar acesso"):
            r = api("POST", "/api/v1/auth/login", json={"email": email, "password": password})
            if r.ok:
                body = LoginResponse.model_validate(r.json())
                user = UserPublic(**body.model_dump(exclude={"session_id"}))
                dispatch(session.logged_in(state(), user, body.session_id))
                st.rerun()
            else:
                st.error(error_text(r))


# --- Sidebar ---

def sidebar(projects):
    user = state().current_user
    with st.sidebar:
        st.subheader("VS Data · GovTech TR Analyzer")
        st.caption(f"{user.name} · {'Gestor Master' if user.role == 'admin' else 'Consultor'}")
        if st.button("Sair"):
            api("POST", "/api/v1/auth/logout")
            dispatch(session.logged_out(state()))
            st.rerun()

        with st.expander("Nova análise"):
            name = st.text_input("Referência do cliente / número do edital")
            specialist = st.radio(
                "Especialista", list(SPECIALIST_LABELS), format_func=SPECIALIST_LABELS.get, horizontal=True
            )
            if st.button("Confirmar projeto", disabled=not name.strip()):
                r = api("POST", "/api/v1/projects", json={"name": name, "specialist": specialist})
                if r.ok:
                    dispatch(session.project_created(state(), AnalysisProject.model_validate(r.json())))
                    st.rerun()
                else:
                    st.error(error_text(r))

        st.caption("Pastas ativas")
        for p in projects:
            label = f"{p.name} · {SPECIALIST_LABELS[p.specialist]}"
            current = p.id == state().selected_project_id
            if st.button(label, key=f"project_{p.id}", type="primary" if current else "secondary"):
                dispatch(session.project_selected(state(), p.id))
                st.rerun()


# --- Upload ---

def upload_section(project: AnalysisProject, key: str):
    uploaded = st.file_uploader(
        "Termo de Referência (PDF)", type=["pdf"], key=key, disabled=not session.can_upload(state())
    )
    if uploaded is None or not st.button("Iniciar importação PDF", key=f"{key}_go",
                                         disabled=not session.can_upload(state())):
        return
    if uploaded.type != "application/pdf":
        return
    dispatch(session.upload_started(state()))
    try:
        with st.spinner("Processando documento..."):
            r = api(
                "POST", f"/api/v1/projects/{project.id}/files",
                files={"file": (uploaded.name, uploaded.getvalue(), "application/pdf")},
            )
    finally:
        dispatch(session.upload_finished(state()))
    if not r.ok:
        st.error(f"Falha ao processar análise técnica. {error_text(r)}")
        return
    if r.json().get("truncated"):
        st.session_state.notice = "O documento é extenso: apenas o início do texto foi enviado para a análise da IA."
    dispatch(session.tab_selected(state(), "analysis"))
    st.rerun()


# --- Tabs ---

def analysis_tab(project: AnalysisProject):
    st.header("Análise de Viabilidade e Risco")
    st.caption(SPECIALIST_LABELS[project.specialist])
    if project.classification:
        st.markdown(f"**Classificação:** {project.classification}")
    if project.summary:
        st.markdown(project.summary)
    if project.pontos_atencao_especialista:
        st.subheader("Riscos de desclassificação & gaps técnicos")
        st.markdown(project.pontos_atencao_especialista)

    col1, col2 = st.columns(2)
    with col1:
        st.subheader("SLA & exigências temporais")
        st.markdown(project.sla_exigido or "-")
        st.subheader("Soluções IBM recomendadas" if project.specialist == "ibm_storage" else "Requisitos de projeto")
        for tech in project.tecnologias_sugeridas or []:
            st.markdown(f"- {tech}")
        st.subheader("Requisitos técnicos")
        for req in project.requisitos_tecnicos or []:
            st.markdown(f"- {req}")
    with col2:
        st.subheader("Impacto jurídico e contratual")
        st.markdown(project.riscos_contratuais or "-")
        st.subheader("Qualificação técnica")
        for atestado in project.atestados_exigidos or []:
            st.markdown(f"- {atestado}")
        st.subheader("Fabricantes aderentes")
        st.write(", ".join(project.fabricantes_aderentes or []) or "-")
    if project.keywords:
        st.caption(" · ".join(project.keywords))

    with st.expander(f"Documentos do projeto ({len(project.files)})"):
        for f in project.files:
            st.write(f"{f.name} · {f.size / 1024 / 1024:.2f} MB · {f.upload_date:%d/%m/%Y}")
        upload_section(project, key=f"more_{project.id}")

    st.subheader("Documentação de apoio à proposta")
    prompt = st.text_area(
        "Pedido", key=f"doc_prompt_{project.id}",
        placeholder="Ex: Gere uma declaração de conformidade detalhando o suporte ao protocolo NVMe...",
    )
    if st.button("Gerar e arquivar documento", disabled=not prompt.strip()):
        with st.spinner("Gerando markdown..."):
            r = api("POST", f"/api/v1/projects/{project.id}/documents", json={"prompt": prompt})
        if r.ok:
            st.rerun()
        else:
            st.error(error_text(r))

    st.subheader("Dossiê técnico")
    entries = history_newest_first(project)
    if not entries:
        st.info("Nenhum documento arquivado.")
    for entry in entries:
        with st.expander(f"{ENTRY_LABELS[entry.type]} · {entry.title} · {entry.timestamp:%d/%m/%Y %H:%M}"):
            st.markdown(entry.content)


def chat_tab(project: AnalysisProject):
    for m in state().chat_messages:
        with st.chat_message("user" if m.role == "user" else "assistant"):
            st.markdown(m.content)

    text = st.chat_input("Tire suas dúvidas técnicas sobre o documento...", disabled=state().is_chat_loading)
    if text and session.can_send_chat(state(), text):
        history = session.chat_history(state())
        dispatch(session.chat_sent(state(), text))
        with st.spinner("Consultor IA está analisando..."):
            r = api("POST", f"/api/v1/projects/{project.id}/chat",
                    json={"message": text, "history": [t.model_dump() for t in history]})
        if r.ok:
            dispatch(session.chat_replied(state(), r.json()["reply"]))
        else:
            dispatch(session.chat_failed(state()))
            st.error(error_text(r))
        st.rerun()

    if state().chat_messages and st.button("Arquivar conversa no dossiê"):
        r = api("POST", f"/api/v1/projects/{project.id}/history", json={
            "type": "CHAT_LOG",
            "title": f"Consultoria IA - {state().chat_messages[0].timestamp:%d/%m/%Y %H:%M}",
            "content": format_chat_transcript(state().chat_messages, project.specialist),
        })
        if r.ok:
            st.success("Conversa arquivada.")
        else:
            st.error(error_text(r))


def proposal_tab(project: AnalysisProject):
    st.subheader("Configuração de template")
    st.caption("Modelo customizado ativo" if has_custom_template(project) else "Utilizando modelo padrão VSDATA")

    template_key = f"template_{project.id}"
    if template_key not in st.session_state:
        st.session_state[template_key] = project.proposal_template or DEFAULT_TEMPLATE
    with st.expander("Editar template (variáveis: {{TABELA_ITENS}}, {{SLA}})"):
        st.text_area("Estrutura Markdown", key=template_key, height=300)
        col1, col2 = st.columns(2)
        if col1.button("Salvar alterações"):
            r = api("PUT", f"/api/v1/projects/{project.id}/template",
                    json={"template": st.session_state[template_key]})
            if r.ok:
                st.success("Template salvo.")
            else:
                st.error(error_text(r))
        if col2.button("Resetar padrão"):
            del st.session_state[template_key]
            st.rerun()
        upload = st.file_uploader("Importar .md, .txt ou extrair de PDF", type=["md", "txt", "pdf"],
                                  key=f"template_file_{project.id}")
        if upload is not None and st.button("Carregar template"):
            r = api("POST", f"/api/v1/projects/{project.id}/template/file",
                    files={"file": (upload.name, upload.getvalue(), upload.type or "text/markdown")})
            if r.ok:
                st.session_state.pop(template_key, None)
                st.success("Template carregado com sucesso!")
                st.rerun()
            else:
                st.error(f"Falha ao carregar arquivo. {error_text(r)}")

    st.subheader("Dados da proponente")
    company = {
        "name": st.text_input("Razão social", key=f"company_name_{project.id}"),
        "cnpj": st.text_input("CNPJ / identificação", key=f"company_cnpj_{project.id}"),
        "address": st.text_area("Endereço operacional", key=f"company_address_{project.id}"),
        "email": st.text_input("E-mail", key=f"company_email_{project.id}"),
    }

    st.subheader("Detalhamento de itens")
    items_key = f"items_{project.id}"
    if items_key not in st.session_state:
        st.session_state[items_key] = [i.model_dump(exclude={"id"}) for i in default_items(project)]
    rows = st.data_editor(st.session_state[items_key], num_rows="dynamic", key=f"{items_key}_editor")
    items = items_from_rows(rows)
    st.caption(f"Total estimado: R$ {items_total(items):,.2f}")

    proposal_key = f"proposal_{project.id}"
    if st.button("Consolidar proposta IA", disabled=not company["name"].strip()):
        with st.spinner("Processando proposta..."):
            r = api("POST", f"/api/v1/projects/{project.id}/proposal", json={
                "company": company,
                "items": [i.model_dump() for i in items],
            })
        if r.ok:
            st.session_state[proposal_key] = r.json()["content"]
        else:
            st.error(f"Erro ao gerar proposta com IA. {error_text(r)}")

    generated = st.session_state.get(proposal_key)
    if generated:
        st.subheader("Dossiê consolidado")
        r = api("POST", "/api/v1/proposals/export", json={"content": generated, "company_name": company["name"]})
        if r.ok:
            st.download_button(
                "Exportar Word (.DOC)", r.content,
                file_name=export_filename(company["name"]),
                mime="application/msword",
            )
        st.markdown(generated)


def admin_tab():
    st.header("Central de acessos e permissões")
    r = api("GET", "/api/v1/users")
    if not r.ok:
        st.error(error_text(r))
        return
    users = [UserPublic.model_validate(u) for u in r.json()]
    admins = sum(1 for u in users if u.role == "admin")
    col1, col2 = st.columns(2)
    col1.metric("Gestores", admins)
    col2.metric("Consultores", len(users) - admins)
    st.dataframe([u.model_dump() for u in users], use_container_width=True)

    with st.form("new_user", clear_on_submit=True):
        st.subheader("Habilitar novo perfil")
        name = st.text_input("Nome")
        email = st.text_input("Login / e-mail")
        password = st.text_input("Senha", type="password")
        role = st.selectbox("Perfil", ["user", "admin"], format_func={"user": "Consultor", "admin": "Gestor"}.get)
        if st.form_submit_button("Cadastrar"):
            r = api("POST", "/api/v1/users", json={"name": name, "email": email, "password": password, "role": role})
            if r.ok:
                st.success("Perfil habilitado.")
            else:
                st.error(error_text(r))

    st.subheader("Remover acesso")
    target = st.selectbox("Usuário", users, format_func=lambda u: f"{u.name} ({u.email})")
    confirmed = st.checkbox("Confirmo a remoção. Esta ação é irreversível.")
    if st.button("Remover", disabled=target is None):
        r = api("DELETE", f"/api/v1/users/{target.id}", params={"confirm": "true" if confirmed else "false"})
        if r.ok:
            st.rerun()
        else:
            st.warning(error_text(r))


# --- Page ---

if state().current_user is None:
    login_view()
    st.stop()

projects = load_projects()
sidebar(projects)

# set before a rerun, shown once
if "notice" in st.session_state:
    st.warning(st.session_state.pop("notice"))

selected = next((p for p in projects if p.id == state().selected_project_id), None)
is_admin = state().current_user.role == "admin"

tabs = ["analysis", "chat", "proposal"] if selected else []
if is_admin:
    tabs.append("admin")

if not tabs:
    st.title("GovTech TR Analyzer")
    st.write("Selecione uma análise ativa no menu lateral ou inicie um novo projeto de auditoria técnica.")
    st.stop()

active = state().active_tab if state().active_tab in tabs else tabs[0]
choice = st.radio("Seção", tabs, index=tabs.index(active), format_func=TAB_LABELS.get,
                  horizontal=True, label_visibility="collapsed")
if choice != active:
    dispatch(session.tab_selected(state(), choice))
    st.rerun()

if choice == "admin":
    admin_tab()
elif not selected.files:
    st.header("Auditoria técnica especializada")
    st.write("Realize o upload do Termo de Referência em PDF para análise automatizada pela IA.")
    upload_section(selected, key=f"first_{selected.id}")
elif choice == "analysis":
    analysis_tab(selected)
elif choice == "chat":
    chat_tab(selected)
else:
    proposal_tab(selected)
