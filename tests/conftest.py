"""
Shared fixtures: an isolated data directory per test and a canned AI transport.
"""

import json
from types import SimpleNamespace

import pytest

from backend.app import ai_helpers, auth, config

ANALYSIS = {
    "classification": "Storage All-Flash",
    "summary": "Aquisição de solução de armazenamento.",
    "keywords": ["storage", "NVMe"],
    "requisitosTecnicos": ["200 TB úteis", "Replicação síncrona"],
    "tecnologiasSugeridas": ["FlashSystem 7300"],
    "slaExigido": "Atendimento 24x7 com 4h de solução",
    "riscosContratuais": "Multa de 10% por atraso",
    "fabricantesAderentes": ["IBM", "Dell"],
    "atestadosExigidos": ["Atestado de 50% do volume"],
    "pontosAtencaoEspecialista": "## Pontos de atenção\n- Exige Safeguarded Copy",
}


@pytest.fixture(autouse=True)
def data_dir(tmp_path, monkeypatch):
    """Point storage at a throwaway directory and start with no sessions."""
    path = tmp_path / "data"
    monkeypatch.setattr(config, "DATA_DIR", path)
    monkeypatch.setattr(config, "OPENAI_API_KEY", "test-key")
    monkeypatch.setattr(auth, "_sessions", {})
    return path


@pytest.fixture
def fake_ai(monkeypatch):
    """Replace the network call with canned responses and record every request."""
    fake = SimpleNamespace(
        calls=[],
        analysis=json.dumps(ANALYSIS),
        text="Resposta simulada do consultor.",
        error=None,
    )

    def fake_call_openai(model, system, messages, response_format=None):
        fake.calls.append({
            "model": model,
            "system": system,
            "messages": messages,
            "response_format": response_format,
        })
        if fake.error is not None:
            raise fake.error
        return fake.analysis if response_format else fake.text

    monkeypatch.setattr(ai_helpers, "call_openai", fake_call_openai)
    return fake


@pytest.fixture
def make_pdf():
    """Factory for a one-page PDF whose only content is the given text."""

    def _make(text: str) -> bytes:
        content = f"BT /F1 12 Tf 72 720 Td ({text}) Tj ET".encode("latin-1")
        objects = [
            b"<< /Type /Catalog /Pages 2 0 R >>",
            b"<< /Type /Pages /Kids [3 0 R] /Count 1 >>",
            b"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] /Contents 4 0 R "
            b"/Resources << /Font << /F1 5 0 R >> >> >>",
            b"<< /Length %d >>\nstream\n" % len(content) + content + b"\nendstream",
            b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
        ]
        out = bytearray(b"%PDF-1.4\n")
        offsets = []
        for number, obj in enumerate(objects, start=1):
            offsets.append(len(out))
            out += b"%d 0 obj\n" % number + obj + b"\nendobj\n"
        xref = len(out)
        out += b"xref\n0 %d\n" % (len(objects) + 1)
        out += b"0000000000 65535 f \n"
        for offset in offsets:
            out += b"%010d 00000 n \n" % offset
        out += b"trailer\n<< /Size %d /Root 1 0 R >>\nstartxref\n%d\n%%%%EOF\n" % (len(objects) + 1, xref)
        return bytes(out)

    return _make
