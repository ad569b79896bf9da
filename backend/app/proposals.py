# proposals.py
# Proposal inputs -> prompt text, and markdown -> Word-compatible export

import html
import re
from typing import Any, Dict, Iterable, List, Optional

from .models import AnalysisProject, CompanyInfo, ProposalItem

DEFAULT_TEMPLATE = """# PROPOSTA COMERCIAL E TÉCNICA

## 1. IDENTIFICAÇÃO DA PROPONENTE
**Empresa:** {{NOME_EMPRESA}}
**CNPJ:** {{CNPJ}}
**Endereço:** {{ENDERECO}}

## 2. OBJETO
A presente proposta tem por objeto o fornecimento de solução tecnológica conforme especificações contidas no edital.

## 3. ESPECIFICAÇÕES TÉCNICAS E PREÇOS
{{TABELA_ITENS}}

## 4. VALIDADE DA PROPOSTA
60 (sessenta) dias a contar da data de apresentação.

## 5. PRAZO DE ENTREGA E GARANTIA
Conforme exigido em edital: {{SLA}}"""

WORD_STYLE = (
    "body{font-family:Arial; line-height:1.5; padding:40px;} "
    "table{width:100%; border-collapse:collapse; margin:20px 0;} "
    "th,td{border:1px solid #ccc; padding:10px; text-align:left;} "
    "h1,h2,h3{color:#1a365d;}"
)
WORD_MEDIA_TYPE = "application/msword"


def default_items(project: Optional[AnalysisProject] = None) -> List[ProposalItem]:
    classification = (project.classification if project else None) or "Solução Tecnológica"
    return [ProposalItem(id="1", description=f"Item 01 - {classification}")]


def items_from_rows(rows: Iterable[Dict[str, Any]]) -> List[ProposalItem]:
    """Line items from table-editor rows.

    Cells left empty come back as None and fall back to the item defaults;
    rows without a description are skipped.
    """
    items = []
    for row in rows:
        values = {k: v for k, v in row.items() if v is not None}
        if str(values.get("description", "")).strip():
            items.append(ProposalItem.model_validate(values))
    return items


def template_for(project: AnalysisProject) -> str:
    return project.proposal_template or DEFAULT_TEMPLATE


def has_custom_template(project: AnalysisProject) -> bool:
    return bool(project.proposal_template) and project.proposal_template != DEFAULT_TEMPLATE


def format_company(company: CompanyInfo) -> str:
    return f"Nome: {company.name}, CNPJ: {company.cnpj}, Endereço: {company.address}, E-mail: {company.email}"


def _number(v: float) -> str:
    return str(int(v)) if float(v).is_integer() else str(v)


def format_items(items: List[ProposalItem]) -> str:
    return "\n".join(
        f"- {i.description} | Qtd: {_number(i.quantity)} | Marca/Modelo: {i.brand} {i.model} | Preço: R$ {_number(i.unit_price)}"
        for i in items
    )


def items_total(items: List[ProposalItem]) -> float:
    return sum(i.quantity * i.unit_price for i in items)


def proposal_title(company: CompanyInfo) -> str:
    return f"Proposta Final - {company.name or 'Empresa'}"


def export_filename(company_name: str) -> str:
    slug = re.sub(r"\s+", "_", company_name or "")
    return f"Proposta_VSDATA_{slug or 'Final'}.doc"


# --- markdown -> html ---

def _inline(text: str) -> str:
    text = html.escape(text, quote=False)
    text = re.sub(r"\*\*(.+?)\*\*", r"<strong>\1</strong>", text)
    text = re.sub(r"(?<!\*)\*(?!\s)(.+?)(?<!\s)\*(?!\*)", r"<em>\1</em>", text)
    text = re.sub(r"`([^`]+)`", r"<code>\1</code>", text)
    return text


def _table_cells(line: str) -> List[str]:
    return [c.strip() for c in line.strip().strip("|").split("|")]


def _is_table_separator(line: str) -> bool:
    return bool(re.fullmatch(r"\|?\s*:?-{3,}:?\s*(\|\s*:?-{3,}:?\s*)*\|?", line.strip()))


def markdown_to_html(markdown_content: str) -> str:
    """
    Converts the markdown subset the model produces into HTML: #..###### headings,
    - / * / 1. lists, **bold**, *italic*, `code`, pipe tables, horizontal rules
    and paragraphs. Raw HTML in the input is escaped.
    """
    out = []
    lines = (markdown_content or "").split("\n")
    paragraph: List[str] = []
    list_tag = None
    i = 0

    def flush_paragraph():
        if paragraph:
            out.append("<p>" + "<br>".join(_inline(p) for p in paragraph) + "</p>")
            paragraph.clear()

    def close_list():
        nonlocal list_tag
        if list_tag:
            out.append(f"</{list_tag}>")
            list_tag = None

    while i < len(lines):
        line = lines[i].strip()

        if not line:
            flush_paragraph()
            close_list()
            i += 1
            continue

        heading = re.match(r"(#{1,6})\s+(.*)", line)
        bullet = re.match(r"[-*+]\s+(.*)", line)
        numbered = re.match(r"\d+[.)]\s+(.*)", line)

        if heading:
            flush_paragraph()
            close_list()
            level = len(heading.group(1))
            out.append(f"<h{level}>{_inline(heading.group(2))}</h{level}>")
        elif re.fullmatch(r"(-{3,}|\*{3,}|_{3,})", line):
            flush_paragraph()
            close_list()
            out.append("<hr>")
        elif line.startswith("|") and i + 1 < len(lines) and _is_table_separator(lines[i + 1]):
            flush_paragraph()
            close_list()
            out.append("<table><thead><tr>")
            out.extend(f"<th>{_inline(c)}</th>" for c in _table_cells(line))
            out.append("</tr></thead><tbody>")
            i += 2
            while i < len(lines) and lines[i].strip().startswith("|"):
                out.append("<tr>" + "".join(f"<td>{_inline(c)}</td>" for c in _table_cells(lines[i])) + "</tr>")
                i += 1
            out.append("</tbody></table>")
            continue
        elif bullet or numbered:
            flush_paragraph()
            tag = "ul" if bullet else "ol"
            if list_tag != tag:
                close_list()
                out.append(f"<{tag}>")
                list_tag = tag
            out.append(f"<li>{_inline((bullet or numbered).group(1))}</li>")
        else:
            close_list()
            paragraph.append(line)
        i += 1

    flush_paragraph()
    close_list()
    return "\n".join(out)


def export_word_document(markdown_content: str) -> bytes:
    """HTML wrapped for word processors; the BOM makes Word pick UTF-8."""
    document = (
        f"<html><head><meta charset='utf-8'><style>{WORD_STYLE}</style></head><body>"
        f"{markdown_to_html(markdown_content)}"
        "</body></html>"
    )
    return ("\ufeff" + document).encode("utf-8")
