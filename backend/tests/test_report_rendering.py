"""
Tests for the HTML and PDF report renderers.

Both renderers take a ReportData, so the fixtures build one from plain
diary documents with build_report_data() and never touch Firestore.
PDF content streams are compressed, so PDF tests only check that a
valid document comes out for each data shape.
"""

from datetime import date, datetime, timezone

import pytest

from dorlog.models import Doctor, Medication
from dorlog.services.aggregator import DiaryNote
from dorlog.services.document_filter import DiaryScan, filter_user_documents
from dorlog.services.html_report import INSUFFICIENT_DATA, render_html_report
from dorlog.services.pdf_report import PDFReportGenerator
from dorlog.services.periods import parse_period
from dorlog.services.report_data import build_report_data

JANUARY = [parse_period("2024-01-01_2024-01-31")]
NOW = datetime(2024, 2, 1, 9, 30, tzinfo=timezone.utc)


@pytest.fixture
def full_report():
    documents = [
        ("a@x.com_2024-01-10", {"data": date(2024, 1, 10), "quizzes": [
            {"tipo": "noturno", "respostas": {
                "1": 8, "2": ["Cabeça", "<script>alert(1)</script>"], "4": 2, "9": "Ansioso",
            }},
            {"tipo": "emergencial", "respostas": {
                "1": 9, "2": "Dipirona", "3": ["Pulsante"], "5": ["Estresse"], "7": "Sim, melhorou",
            }},
        ]}),
        ("a@x.com_2024-01-11", {"data": date(2024, 1, 11), "quizzes": [
            {"tipo": "matinal", "respostas": {"1": "Cansado", "3": ["Rigidez"], "4": "Acordei 3 vezes"}},
            {"tipo": "noturno", "respostas": {"1": 2, "2": ["Cabeça"], "8": "Normal"}},
        ]}),
    ]
    scan = filter_user_documents(documents, "a@x.com", JANUARY)
    return build_report_data(
        "a@x.com", scan, JANUARY, NOW,
        doctors=[Doctor(id="d1", name="Dra. Ana & Filhos", specialty="Reumatologia", crm="123")],
        medications=[Medication(id="m1", name="Pregabalina", dosage="75mg", frequency="2x ao dia")],
    )


@pytest.fixture
def empty_report():
    return build_report_data("a@x.com", DiaryScan(), JANUARY, NOW)


@pytest.fixture
def error_report():
    return build_report_data("a@x.com", DiaryScan(ok=False, error="Firestore timeout"), JANUARY, NOW)


class TestHtmlReport:
    def test_sections_present(self, full_report):
        html = render_html_report(full_report, report_id="abc123")

        assert html.startswith("<!DOCTYPE html>")
        assert "DorLog - Relatório de Saúde" in html
        assert "Período: 01/01/2024 - 31/01/2024" in html
        assert "Relatório abc123" in html
        for heading in (
            "Resumo",
            "Evolução da Dor",
            "Pontos de Dor Mais Frequentes",
            "Episódios de Crise",
            "Medicamentos de Resgate",
            "Equipe Médica",
            "Medicamentos Prescritos",
        ):
            assert f"<h2>{heading}</h2>" in html

    def test_pain_statistics(self, full_report):
        html = render_html_report(full_report)

        assert "Intensidade média: <b>5.0/10</b>" in html
        assert "Pico máximo: <b>8/10</b>" in html
        assert "Menor nível: <b>2/10</b>" in html

    def test_user_text_is_escaped(self, full_report):
        html = render_html_report(full_report)

        assert "<script>" not in html
        assert "&lt;script&gt;" in html
        assert "Dra. Ana &amp; Filhos" in html

    def test_custom_periods_text(self, full_report):
        html = render_html_report(full_report, periods_text="Janeiro 2024")

        assert "Período: Janeiro 2024" in html

    def test_empty_report_says_insufficient_data(self, empty_report):
        html = render_html_report(empty_report)

        assert INSUFFICIENT_DATA in html
        assert "Nenhum episódio de crise registrado no período." in html
        assert 'class="alert"' not in html

    def test_crisis_sleep_and_diary_sections(self, full_report):
        html = render_html_report(full_report)

        for heading in (
            "Padrões das Crises",
            "Humor e Crises",
            "Sono e Dor",
            "Sintomas Matinais",
            "Anotações do Diário",
        ):
            assert f"<h2>{heading}</h2>" in html
        assert "<td>Estresse</td>" in html
        assert "<td>Sim, melhorou</td><td>1</td><td>100%</td><td>9.0/10</td>" in html
        assert "<td>Ansioso</td><td>1</td><td>1</td><td>100%</td>" in html
        assert "Dados insuficientes para análise" in html
        assert "<td>Rigidez</td>" in html
        assert "Acordei 3 vezes" in html

    def test_empty_report_leaves_out_optional_sections(self, empty_report):
        html = render_html_report(empty_report)

        assert "Padrões das Crises" not in html
        assert "Sono e Dor" not in html
        assert "Anotações do Diário" not in html

    def test_error_report_shows_banner(self, error_report):
        html = render_html_report(error_report)

        assert 'class="alert"' in html
        assert "Firestore timeout" in html


class TestPdfReport:
    def test_full_report_is_pdf(self, full_report):
        pdf_bytes = PDFReportGenerator().generate_health_report(
            full_report, periods_text="Janeiro 2024", report_id="abc123",
        )

        assert pdf_bytes[:5] == b"%PDF-"
        assert len(pdf_bytes) > 1000

    def test_empty_report_still_renders(self, empty_report):
        pdf_bytes = PDFReportGenerator().generate_health_report(empty_report)

        assert pdf_bytes[:5] == b"%PDF-"

    def test_error_report_still_renders(self, error_report):
        pdf_bytes = PDFReportGenerator().generate_health_report(error_report)

        assert pdf_bytes[:5] == b"%PDF-"

    def test_user_text_in_new_sections_is_escaped(self, full_report):
        full_report.diary_notes.append(DiaryNote(date(2024, 1, 10), "Humor", "<b>bem & mal"))

        pdf_bytes = PDFReportGenerator().generate_health_report(full_report)

        assert pdf_bytes[:5] == b"%PDF-"

    def test_long_pain_series(self):
        documents = [
            (f"a@x.com_{day}", {"data": date(2024, 1, day), "quizzes": [
                {"tipo": "noturno", "respostas": {"1": day % 11, "2": [f"Local {day % 12}"]}},
            ]})
            for day in range(1, 31)
        ]
        scan = filter_user_documents(documents, "a@x.com", JANUARY)
        data = build_report_data("a@x.com", scan, JANUARY, NOW)

        pdf_bytes = PDFReportGenerator().generate_health_report(data)

        assert pdf_bytes[:5] == b"%PDF-"

    def test_numeric_care_team_fields(self, empty_report):
        """Numbers stored in text fields (a CRM, a phone, a name) are rendered as text."""
        empty_report.doctors = [Doctor.from_document("d1", {
            "nome": 12345, "crm": 98765, "telefone": 11999990000,
        })]
        empty_report.medications = [Medication.from_document("m1", {
            "nome": 500, "posologia": 2, "frequencia": None, "observacoes": 1.5,
        })]

        assert empty_report.doctors[0].crm == "98765"
        assert empty_report.doctors[0].contact == "11999990000"
        assert empty_report.medications[0].name == "500"
        assert empty_report.medications[0].frequency == "Não especificada"

        pdf_bytes = PDFReportGenerator().generate_health_report(empty_report)
        html = render_html_report(empty_report)

        assert pdf_bytes[:5] == b"%PDF-"
        assert "98765" in html
