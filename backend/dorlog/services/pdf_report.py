"""
PDF report generator: turns aggregated ReportData into a patient health report.

The PDF carries the same content as the HTML report, laid out for print:
1. Header with period, user and generation time
2. Summary table (days, crises, quiz counts, care team size)
3. Care team and prescribed medications
4. Pain evolution: statistics plus the latest readings
5. Most frequent pain points
6. Crisis episodes, day by day
7. Crisis patterns, mood and crises, sleep and pain, morning symptoms,
   diary notes (each left out when it has no data)

Uses ReportLab's Platypus engine: we build a list of "flowables"
(paragraphs, tables, spacers) and ReportLab handles pagination.
Core sections with nothing to show render a short "insufficient data" note
instead of disappearing, so a blank report still reads as intentional.
"""

from io import BytesIO
from typing import Optional

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER, TA_LEFT
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import (
    HRFlowable,
    KeepTogether,
    Paragraph,
    SimpleDocTemplate,
    Spacer,
    Table,
    TableStyle,
)

from dorlog.models import QuizKind
from dorlog.services.aggregator import PainSummary
from dorlog.services.periods import format_period_range
from dorlog.services.report_data import ReportData


# --- Brand Colors ---
BRAND_PRIMARY = colors.HexColor("#1a365d")     # Deep navy: headings
BRAND_SECONDARY = colors.HexColor("#2563eb")   # Blue: header band
BRAND_ACCENT = colors.HexColor("#38a169")      # Green: mild pain
BRAND_CAUTION = colors.HexColor("#d69e2e")     # Amber: moderate pain
BRAND_DANGER = colors.HexColor("#e53e3e")      # Red: crises, intense pain
BRAND_LIGHT_BG = colors.HexColor("#f7fafc")    # Light gray: table backgrounds
BRAND_TEXT = colors.HexColor("#2d3748")        # Dark gray: body text
BRAND_MUTED = colors.HexColor("#718096")       # Medium gray: captions

RECENT_READINGS = 10


def _build_styles() -> dict:
    """Create all paragraph styles used in the health report."""
    base = getSampleStyleSheet()

    return {
        "title": ParagraphStyle(
            "ReportTitle",
            parent=base["Title"],
            fontSize=22,
            textColor=BRAND_PRIMARY,
            spaceAfter=4,
            alignment=TA_LEFT,
        ),
        "subtitle": ParagraphStyle(
            "ReportSubtitle",
            parent=base["Normal"],
            fontSize=11,
            textColor=BRAND_MUTED,
            spaceAfter=12,
        ),
        "h2": ParagraphStyle(
            "Heading2",
            parent=base["Heading2"],
            fontSize=15,
            textColor=BRAND_PRIMARY,
            spaceBefore=14,
            spaceAfter=8,
        ),
        "h3": ParagraphStyle(
            "Heading3",
            parent=base["Heading3"],
            fontSize=12,
            textColor=BRAND_SECONDARY,
            spaceBefore=8,
            spaceAfter=4,
        ),
        "body": ParagraphStyle(
            "BodyText",
            parent=base["Normal"],
            fontSize=10,
            textColor=BRAND_TEXT,
            leading=14,
            spaceAfter=6,
        ),
        "body_italic": ParagraphStyle(
            "BodyItalic",
            parent=base["Normal"],
            fontSize=10,
            textColor=BRAND_MUTED,
            leading=14,
            spaceAfter=6,
            fontName="Helvetica-Oblique",
        ),
        "sub_bullet": ParagraphStyle(
            "SubBulletPoint",
            parent=base["Normal"],
            fontSize=9,
            textColor=BRAND_TEXT,
            leading=13,
            leftIndent=24,
            spaceAfter=3,
        ),
        "alert": ParagraphStyle(
            "Alert",
            parent=base["Normal"],
            fontSize=10,
            textColor=BRAND_DANGER,
            spaceAfter=8,
        ),
        "footer": ParagraphStyle(
            "Footer",
            parent=base["Normal"],
            fontSize=8,
            textColor=BRAND_MUTED,
            alignment=TA_CENTER,
        ),
    }


def _table_style(row_count: int) -> TableStyle:
    """Shared look for every data table: navy header, zebra rows, light grid."""
    return TableStyle([
        ("BACKGROUND", (0, 0), (-1, 0), BRAND_PRIMARY),
        ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("FONTSIZE", (0, 0), (-1, 0), 10),
        ("BOTTOMPADDING", (0, 0), (-1, 0), 7),
        ("TOPPADDING", (0, 0), (-1, 0), 7),
        ("FONTNAME", (0, 1), (-1, -1), "Helvetica"),
        ("FONTSIZE", (0, 1), (-1, -1), 9),
        ("BOTTOMPADDING", (0, 1), (-1, -1), 5),
        ("TOPPADDING", (0, 1), (-1, -1), 5),
        *[("BACKGROUND", (0, i), (-1, i), BRAND_LIGHT_BG) for i in range(2, row_count, 2)],
        ("GRID", (0, 0), (-1, -1), 0.5, colors.HexColor("#e2e8f0")),
        ("LINEBELOW", (0, 0), (-1, 0), 2, BRAND_PRIMARY),
    ])


class PDFReportGenerator:
    """Generates the patient health report PDF.

    Usage:
        data = await ReportDataService(db).load("alice@example.com")
        pdf_bytes = PDFReportGenerator().generate_health_report(data)
    """

    def __init__(self):
        self.styles = _build_styles()

    def generate_health_report(
        self,
        data: ReportData,
        periods_text: Optional[str] = None,
        report_id: Optional[str] = None,
    ) -> bytes:
        """Render the full health report and return raw PDF bytes."""
        buffer = BytesIO()

        doc = SimpleDocTemplate(
            buffer,
            pagesize=A4,
            topMargin=0.75 * inch,
            bottomMargin=0.75 * inch,
            leftMargin=0.75 * inch,
            rightMargin=0.75 * inch,
            title=f"DorLog - Relatório de Saúde - {data.user_email}",
            author="DorLog",
        )

        story = []
        self._render_header(story, data, periods_text, report_id)
        self._render_summary(story, data)
        self._render_doctors(story, data)
        self._render_medications(story, data)
        self._render_pain_evolution(story, data)
        self._render_pain_points(story, data)
        self._render_crisis_episodes(story, data)
        self._render_crisis_patterns(story, data)
        self._render_mood_crisis(story, data)
        self._render_sleep_pain(story, data)
        self._render_symptoms(story, data)
        self._render_diary_notes(story, data)

        story.append(Spacer(1, 0.3 * inch))
        story.append(HRFlowable(
            width="100%", thickness=1, color=BRAND_MUTED,
            spaceAfter=8, spaceBefore=8,
        ))
        story.append(Paragraph(
            "DorLog  •  Gestão Inteligente da Sua Saúde",
            self.styles["footer"],
        ))

        doc.build(story, onFirstPage=self._add_page_number,
                  onLaterPages=self._add_page_number)

        return buffer.getvalue()

    # ------------------------------------------------------------------
    # SECTIONS
    # ------------------------------------------------------------------

    def _render_header(self, story: list, data: ReportData, periods_text, report_id):
        story.append(Paragraph("DorLog - Relatório de Saúde", self.styles["title"]))
        story.append(Paragraph("Gestão Inteligente da Sua Saúde", self.styles["subtitle"]))

        period = periods_text or format_period_range(data.window)
        lines = [
            f"<b>Período:</b> {self._safe(period)}",
            f"<b>Usuário:</b> {self._safe(data.user_email)}",
            f"<b>Gerado em:</b> {data.generated_at:%d/%m/%Y %H:%M}",
        ]
        if report_id:
            lines.append(f"<b>Relatório:</b> {self._safe(report_id)}")
        for line in lines:
            story.append(Paragraph(line, self.styles["body"]))

        story.append(HRFlowable(
            width="100%", thickness=2, color=BRAND_PRIMARY,
            spaceAfter=10, spaceBefore=4,
        ))

        if data.status == "error":
            story.append(Paragraph(
                "Não foi possível carregar todos os dados: "
                f"{self._safe(data.error or 'erro desconhecido')}",
                self.styles["alert"],
            ))

    def _render_summary(self, story: list, data: ReportData):
        story.append(Paragraph("Resumo Executivo", self.styles["h2"]))

        rows = [
            ["Indicador", "Valor"],
            ["Dias com registros", str(data.days_with_records)],
            ["Episódios de crise", str(data.crisis_count)],
            ["Diários matinais", str(data.quiz_counts.get(QuizKind.MORNING, 0))],
            ["Diários noturnos", str(data.quiz_counts.get(QuizKind.NIGHT, 0))],
            ["Médicos cadastrados", str(len(data.doctors))],
            ["Medicamentos ativos", str(len(data.medications))],
        ]
        table = Table(rows, colWidths=[3.5 * inch, 2 * inch])
        style = _table_style(len(rows))
        style.add("ALIGN", (1, 0), (1, -1), "CENTER")
        if data.crisis_count:
            style.add("TEXTCOLOR", (1, 2), (1, 2), BRAND_DANGER)
        table.setStyle(style)
        story.append(table)
        story.append(Spacer(1, 0.1 * inch))

        if data.observations:
            story.append(Paragraph(self._safe(data.observations), self.styles["body_italic"]))

    def _render_doctors(self, story: list, data: ReportData):
        if not data.doctors:
            return
        story.append(Paragraph("Equipe Médica", self.styles["h2"]))

        rows = [["Nome", "Especialidade", "CRM", "Contato"]]
        for doctor in data.doctors:
            rows.append([
                Paragraph(self._safe(doctor.name), self.styles["body"]),
                Paragraph(self._safe(doctor.specialty), self.styles["body"]),
                doctor.crm,
                doctor.contact or "—",
            ])
        table = Table(rows, colWidths=[2 * inch, 1.8 * inch, 1.1 * inch, 1.6 * inch])
        table.setStyle(_table_style(len(rows)))
        story.append(table)

    def _render_medications(self, story: list, data: ReportData):
        if not data.medications:
            return
        story.append(Paragraph("Medicamentos Prescritos", self.styles["h2"]))

        for index, medication in enumerate(data.medications, 1):
            elements = [
                Paragraph(f"<b>{index}. {self._safe(medication.name)}</b>", self.styles["h3"]),
                Paragraph(f"Posologia: {self._safe(medication.dosage)}", self.styles["sub_bullet"]),
                Paragraph(f"Frequência: {self._safe(medication.frequency)}", self.styles["sub_bullet"]),
                Paragraph(f"Médico: {self._safe(medication.doctor_name)}", self.styles["sub_bullet"]),
            ]
            if medication.notes:
                elements.append(Paragraph(
                    f"Observações: {self._safe(medication.notes)}", self.styles["sub_bullet"],
                ))
            story.append(KeepTogether(elements))

    def _render_pain_evolution(self, story: list, data: ReportData):
        story.append(Paragraph("Evolução da Dor", self.styles["h2"]))

        summary = data.pain_summary
        if not isinstance(summary, PainSummary):
            story.append(Paragraph(
                "Dados insuficientes: nenhum diário noturno com intensidade de dor no período.",
                self.styles["body_italic"],
            ))
            return

        story.append(Paragraph(
            f"Intensidade média da dor: <b>{summary.mean:.1f}/10</b>  •  "
            f"Pico máximo: <b>{summary.maximum}/10</b>  •  "
            f"Menor nível: <b>{summary.minimum}/10</b>  •  "
            f"Total de registros: <b>{summary.count}</b>",
            self.styles["body"],
        ))

        story.append(Paragraph("Últimos registros", self.styles["h3"]))
        recent = data.pain_series.points[-RECENT_READINGS:]
        rows = [["Data", "Intensidade", "Classificação"]]
        for reading in recent:
            rows.append([
                f"{reading.day:%d/%m/%Y}",
                f"{reading.intensity}/10",
                self._intensity_label(reading.intensity),
            ])

        table = Table(rows, colWidths=[1.8 * inch, 1.5 * inch, 2.2 * inch])
        style = _table_style(len(rows))
        style.add("ALIGN", (1, 0), (-1, -1), "CENTER")
        for row, reading in enumerate(recent, 1):
            style.add("TEXTCOLOR", (2, row), (2, row), self._intensity_color(reading.intensity))
        table.setStyle(style)
        story.append(table)

    def _render_pain_points(self, story: list, data: ReportData):
        story.append(Paragraph("Pontos de Dor Mais Frequentes", self.styles["h2"]))

        if not data.pain_points:
            story.append(Paragraph(
                "Nenhum local de dor registrado no período.",
                self.styles["body_italic"],
            ))
            return

        rows = [["#", "Local", "Ocorrências"]]
        for index, item in enumerate(data.pain_points, 1):
            rows.append([str(index), item.point, str(item.count)])
        table = Table(rows, colWidths=[0.5 * inch, 3.5 * inch, 1.5 * inch])
        style = _table_style(len(rows))
        style.add("ALIGN", (2, 0), (2, -1), "CENTER")
        table.setStyle(style)
        story.append(table)

    def _render_crisis_episodes(self, story: list, data: ReportData):
        story.append(Paragraph("Episódios de Crise", self.styles["h2"]))

        if not data.crisis_episodes:
            story.append(Paragraph(
                "Nenhum episódio de crise registrado no período.",
                self.styles["body_italic"],
            ))
            return

        for crisis_day in data.crisis_episodes:
            elements = [Paragraph(
                f"{crisis_day.day:%d/%m/%Y} - {len(crisis_day.quizzes)} episódio(s)",
                self.styles["h3"],
            )]
            for number, quiz in enumerate(crisis_day.quizzes, 1):
                elements.append(Paragraph(f"<b>Episódio {number}:</b>", self.styles["body"]))
                for _, answer in sorted(quiz.answers.items(), key=lambda item: item[0].zfill(3)):
                    if answer in (None, "", []):
                        continue
                    if isinstance(answer, list):
                        answer = ", ".join(str(a) for a in answer)
                    elements.append(Paragraph(
                        f"• {self._safe(str(answer))}", self.styles["sub_bullet"],
                    ))
            story.append(KeepTogether(elements))

    def _render_crisis_patterns(self, story: list, data: ReportData):
        if not (data.crisis_triggers or data.crisis_pain_types or data.medication_responses):
            return
        story.append(Paragraph("Padrões das Crises", self.styles["h2"]))

        for title, items in (("Gatilhos", data.crisis_triggers), ("Tipo de dor", data.crisis_pain_types)):
            if not items:
                continue
            story.append(Paragraph(title, self.styles["h3"]))
            rows = [["Descrição", "Ocorrências"]]
            rows += [[Paragraph(self._safe(i.label), self.styles["body"]), str(i.count)] for i in items]
            table = Table(rows, colWidths=[4 * inch, 1.5 * inch])
            style = _table_style(len(rows))
            style.add("ALIGN", (1, 0), (1, -1), "CENTER")
            table.setStyle(style)
            story.append(table)

        if data.medication_responses:
            story.append(Paragraph("Resposta à medicação", self.styles["h3"]))
            rows = [["Resposta", "Vezes", "%", "Dor média"]]
            for r in data.medication_responses:
                rows.append([
                    Paragraph(self._safe(r.response), self.styles["body"]),
                    str(r.count),
                    f"{r.share:.0%}",
                    "—" if r.mean_intensity is None else f"{r.mean_intensity:.1f}/10",
                ])
            table = Table(rows, colWidths=[2.8 * inch, 0.8 * inch, 0.8 * inch, 1.1 * inch])
            style = _table_style(len(rows))
            style.add("ALIGN", (1, 0), (-1, -1), "CENTER")
            table.setStyle(style)
            story.append(table)

    def _render_mood_crisis(self, story: list, data: ReportData):
        if not data.mood_crisis:
            return
        story.append(Paragraph("Humor e Crises", self.styles["h2"]))

        rows = [["Humor à noite", "Dias", "Dias com crise", "Taxa"]]
        for m in data.mood_crisis:
            rows.append([
                Paragraph(self._safe(m.mood), self.styles["body"]),
                str(m.days), str(m.crisis_days), f"{m.rate:.0%}",
            ])
        table = Table(rows, colWidths=[2.3 * inch, 0.9 * inch, 1.3 * inch, 1 * inch])
        style = _table_style(len(rows))
        style.add("ALIGN", (1, 0), (-1, -1), "CENTER")
        table.setStyle(style)
        story.append(table)

    def _render_sleep_pain(self, story: list, data: ReportData):
        analysis = data.sleep_pain
        if not analysis.pairs:
            return
        story.append(Paragraph("Sono e Dor", self.styles["h2"]))

        text = self._safe(analysis.description)
        if analysis.correlation is not None:
            text += f" (r = {analysis.correlation:.2f})"
        story.append(Paragraph(text, self.styles["body"]))
        story.append(Paragraph(
            f"Noites com sono ruim: <b>{analysis.poor_sleep_nights}</b>  •  "
            f"Sono ruim seguido de dor alta: <b>{analysis.critical_nights}</b>",
            self.styles["body"],
        ))

        recent = analysis.pairs[-RECENT_READINGS:]
        rows = [["Noite", "Qualidade do sono", "Dor no dia seguinte"]]
        for pair in recent:
            rows.append([f"{pair.night:%d/%m/%Y}", f"{pair.sleep_quality}/10", f"{pair.pain}/10"])
        table = Table(rows, colWidths=[1.8 * inch, 1.8 * inch, 1.9 * inch])
        style = _table_style(len(rows))
        style.add("ALIGN", (1, 0), (-1, -1), "CENTER")
        for row, pair in enumerate(recent, 1):
            style.add("TEXTCOLOR", (2, row), (2, row), self._intensity_color(pair.pain))
        table.setStyle(style)
        story.append(table)

    def _render_symptoms(self, story: list, data: ReportData):
        if not data.symptoms:
            return
        story.append(Paragraph("Sintomas Matinais", self.styles["h2"]))

        rows = [["Sintoma", "Ocorrências"]]
        rows += [[Paragraph(self._safe(s.label), self.styles["body"]), str(s.count)] for s in data.symptoms]
        table = Table(rows, colWidths=[4 * inch, 1.5 * inch])
        style = _table_style(len(rows))
        style.add("ALIGN", (1, 0), (1, -1), "CENTER")
        table.setStyle(style)
        story.append(table)

    def _render_diary_notes(self, story: list, data: ReportData):
        if not data.diary_notes:
            return
        story.append(Paragraph("Anotações do Diário", self.styles["h2"]))

        rows = [["Data", "Item", "Resposta"]]
        for note in data.diary_notes:
            rows.append([
                f"{note.day:%d/%m/%Y}",
                note.label,
                Paragraph(self._safe(note.text), self.styles["body"]),
            ])
        table = Table(rows, colWidths=[1.1 * inch, 1.3 * inch, 4.1 * inch])
        table.setStyle(_table_style(len(rows)))
        story.append(table)

    # ------------------------------------------------------------------
    # HELPERS
    # ------------------------------------------------------------------

    @staticmethod
    def _intensity_label(intensity: int) -> str:
        if intensity <= 3:
            return "Leve"
        if intensity <= 6:
            return "Moderada"
        return "Intensa"

    @staticmethod
    def _intensity_color(intensity: int):
        if intensity <= 3:
            return BRAND_ACCENT
        if intensity <= 6:
            return BRAND_CAUTION
        return BRAND_DANGER

    @staticmethod
    def _safe(text: str) -> str:
        """Escape text for ReportLab's XML-based paragraph parser."""
        text = text.replace("&", "&amp;")
        text = text.replace("<", "&lt;")
        text = text.replace(">", "&gt;")
        return text

    @staticmethod
    def _add_page_number(canvas, doc):
        """Add page numbers to the bottom of each page."""
        canvas.saveState()
        canvas.setFont("Helvetica", 8)
        canvas.setFillColor(BRAND_MUTED)
        canvas.drawCentredString(
            A4[0] / 2, 0.4 * inch,
            f"Página {canvas.getPageNumber()}",
        )
        canvas.restoreState()
