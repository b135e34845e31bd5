"""
HTML health report.

Produces one self-contained HTML document (inline CSS, no scripts, no
external assets) so it can be uploaded as a single file and opened from
any link. Every piece of user-supplied text goes through html.escape().

Sections mirror the PDF report: summary cards, pain evolution, pain
points, crisis episodes, rescue medications, crisis patterns, mood and
crises, sleep and pain, morning symptoms, diary notes, care team,
prescriptions. Optional sections are left out when they have no data.
"""

import html
from datetime import datetime
from typing import Optional

from dorlog.models import QuizKind
from dorlog.services.aggregator import PainSummary
from dorlog.services.periods import format_period_range
from dorlog.services.report_data import ReportData

_STYLE = """
body { font-family: Helvetica, Arial, sans-serif; color: #2d3748; margin: 0; background: #f7fafc; }
.page { max-width: 860px; margin: 0 auto; padding: 24px; background: #fff; }
header { background: #2563eb; color: #fff; padding: 20px 24px; border-radius: 8px; }
header h1 { margin: 0 0 4px 0; font-size: 24px; }
header p { margin: 0; opacity: 0.9; }
.meta { color: #718096; font-size: 13px; margin: 12px 0 20px 0; }
h2 { color: #1a365d; border-bottom: 2px solid #e2e8f0; padding-bottom: 4px; margin-top: 28px; }
.cards { display: flex; flex-wrap: wrap; gap: 12px; }
.card { flex: 1 1 150px; border: 1px solid #e2e8f0; border-radius: 8px; padding: 12px; text-align: center; }
.card .value { font-size: 26px; font-weight: bold; color: #1a365d; }
.card .label { font-size: 12px; color: #718096; }
.card.crisis .value { color: #e53e3e; }
table { width: 100%; border-collapse: collapse; font-size: 14px; }
th, td { text-align: left; padding: 6px 8px; border-bottom: 1px solid #e2e8f0; }
th { background: #f7fafc; color: #1a365d; }
.bar { background: #e2e8f0; border-radius: 4px; height: 10px; width: 100%; }
.bar span { display: block; height: 10px; border-radius: 4px; background: #2b6cb0; }
.bar.pain span { background: #e53e3e; }
.empty { color: #718096; font-style: italic; }
.alert { background: #fff5f5; border: 1px solid #feb2b2; color: #c53030; padding: 10px 12px; border-radius: 6px; }
footer { margin-top: 32px; color: #718096; font-size: 12px; text-align: center; }
"""

INSUFFICIENT_DATA = "Dados insuficientes no período."


def _esc(value) -> str:
    return html.escape(str(value))


def _bar(fraction: float, css_class: str = "") -> str:
    width = max(0.0, min(1.0, fraction)) * 100
    return f'<div class="bar {css_class}"><span style="width: {width:.0f}%"></span></div>'


def _summary_cards(data: ReportData) -> str:
    pain = data.pain_summary
    average = f"{pain.mean:.1f}" if isinstance(pain, PainSummary) else "—"
    cards = [
        ("Dias com registros", data.days_with_records, ""),
        ("Episódios de crise", data.crisis_count, "crisis"),
        ("Dor média (0-10)", average, ""),
        ("Diários matinais", data.quiz_counts.get(QuizKind.MORNING, 0), ""),
        ("Diários noturnos", data.quiz_counts.get(QuizKind.NIGHT, 0), ""),
    ]
    items = "".join(
        f'<div class="card {css}"><div class="value">{_esc(value)}</div>'
        f'<div class="label">{_esc(label)}</div></div>'
        for label, value, css in cards
    )
    return f'<section><h2>Resumo</h2><div class="cards">{items}</div>' \
           f'<p>{_esc(data.observations)}</p></section>'


def _pain_evolution(data: ReportData) -> str:
    pain = data.pain_summary
    if not isinstance(pain, PainSummary):
        return f'<section><h2>Evolução da Dor</h2><p class="empty">{INSUFFICIENT_DATA}</p></section>'

    rows = "".join(
        f"<tr><td>{reading.day:%d/%m/%Y}</td><td>{reading.intensity}/10</td>"
        f"<td>{_bar(reading.intensity / 10, 'pain')}</td></tr>"
        for reading in data.pain_series.points
    )
    return (
        "<section><h2>Evolução da Dor</h2>"
        f"<p>Intensidade média: <b>{pain.mean:.1f}/10</b> · "
        f"Pico máximo: <b>{pain.maximum}/10</b> · "
        f"Menor nível: <b>{pain.minimum}/10</b> · "
        f"Registros: <b>{pain.count}</b></p>"
        "<table><thead><tr><th>Data</th><th>Intensidade</th><th></th></tr></thead>"
        f"<tbody>{rows}</tbody></table></section>"
    )


def _pain_points(data: ReportData) -> str:
    if not data.pain_points:
        return f'<section><h2>Pontos de Dor Mais Frequentes</h2><p class="empty">{INSUFFICIENT_DATA}</p></section>'

    top = data.pain_points[0].count
    rows = "".join(
        f"<tr><td>{index}. {_esc(item.point)}</td><td>{item.count}</td>"
        f"<td>{_bar(item.count / top)}</td></tr>"
        for index, item in enumerate(data.pain_points, 1)
    )
    return (
        "<section><h2>Pontos de Dor Mais Frequentes</h2>"
        "<table><thead><tr><th>Local</th><th>Ocorrências</th><th></th></tr></thead>"
        f"<tbody>{rows}</tbody></table></section>"
    )


def _crisis_episodes(data: ReportData) -> str:
    if not data.crisis_episodes:
        return "<section><h2>Episódios de Crise</h2>" \
               '<p class="empty">Nenhum episódio de crise registrado no período.</p></section>'

    blocks = []
    for crisis_day in data.crisis_episodes:
        episodes = []
        for number, quiz in enumerate(crisis_day.quizzes, 1):
            answers = "".join(
                f"<li>{_esc(', '.join(map(str, answer)) if isinstance(answer, list) else answer)}</li>"
                for _, answer in sorted(quiz.answers.items(), key=lambda item: item[0].zfill(3))
                if answer not in (None, "", [])
            )
            episodes.append(f"<p>Episódio {number}:</p><ul>{answers}</ul>")
        blocks.append(
            f"<h3>{crisis_day.day:%d/%m/%Y} - {len(crisis_day.quizzes)} episódio(s)</h3>"
            + "".join(episodes)
        )
    return "<section><h2>Episódios de Crise</h2>" + "".join(blocks) + "</section>"


def _rescue_medications(data: ReportData) -> str:
    if not data.rescue_medications:
        return ""
    rows = "".join(
        f"<tr><td>{_esc(usage.medication)}</td><td>{usage.frequency}</td>"
        f"<td>{_esc(', '.join(f'{d:%d/%m}' for d in usage.dates))}</td></tr>"
        for usage in data.rescue_medications
    )
    return (
        "<section><h2>Medicamentos de Resgate</h2>"
        "<table><thead><tr><th>Medicamento</th><th>Vezes</th><th>Datas</th></tr></thead>"
        f"<tbody>{rows}</tbody></table></section>"
    )


def _label_table(title: str, items, column: str) -> str:
    if not items:
        return ""
    top = items[0].count
    rows = "".join(
        f"<tr><td>{_esc(item.label)}</td><td>{item.count}</td><td>{_bar(item.count / top)}</td></tr>"
        for item in items
    )
    return (
        f"<h3>{_esc(title)}</h3>"
        f"<table><thead><tr><th>{_esc(column)}</th><th>Ocorrências</th><th></th></tr></thead>"
        f"<tbody>{rows}</tbody></table>"
    )


def _crisis_patterns(data: ReportData) -> str:
    responses = ""
    if data.medication_responses:
        rows = "".join(
            f"<tr><td>{_esc(r.response)}</td><td>{r.count}</td><td>{r.share:.0%}</td>"
            f"<td>{'—' if r.mean_intensity is None else f'{r.mean_intensity:.1f}/10'}</td></tr>"
            for r in data.medication_responses
        )
        responses = (
            "<h3>Resposta à medicação</h3>"
            "<table><thead><tr><th>Resposta</th><th>Vezes</th><th>%</th><th>Dor média</th></tr></thead>"
            f"<tbody>{rows}</tbody></table>"
        )

    content = (
        _label_table("Gatilhos", data.crisis_triggers, "Gatilho")
        + _label_table("Tipo de dor", data.crisis_pain_types, "Tipo")
        + responses
    )
    if not content:
        return ""
    return f"<section><h2>Padrões das Crises</h2>{content}</section>"


def _mood_crisis(data: ReportData) -> str:
    if not data.mood_crisis:
        return ""
    rows = "".join(
        f"<tr><td>{_esc(m.mood)}</td><td>{m.days}</td><td>{m.crisis_days}</td>"
        f"<td>{m.rate:.0%}</td></tr>"
        for m in data.mood_crisis
    )
    return (
        "<section><h2>Humor e Crises</h2>"
        "<table><thead><tr><th>Humor à noite</th><th>Dias</th><th>Dias com crise</th><th>Taxa</th></tr></thead>"
        f"<tbody>{rows}</tbody></table></section>"
    )


def _sleep_pain(data: ReportData) -> str:
    analysis = data.sleep_pain
    if not analysis.pairs:
        return ""

    correlation = "" if analysis.correlation is None else f" (r = {analysis.correlation:.2f})"
    rows = "".join(
        f"<tr><td>{p.night:%d/%m/%Y}</td><td>{p.sleep_quality}/10</td><td>{p.pain}/10</td></tr>"
        for p in analysis.pairs
    )
    return (
        "<section><h2>Sono e Dor</h2>"
        f"<p>{_esc(analysis.description)}{correlation}</p>"
        f"<p>Noites com sono ruim: <b>{analysis.poor_sleep_nights}</b> · "
        f"Sono ruim seguido de dor alta: <b>{analysis.critical_nights}</b></p>"
        "<table><thead><tr><th>Noite</th><th>Qualidade do sono</th><th>Dor no dia seguinte</th></tr></thead>"
        f"<tbody>{rows}</tbody></table></section>"
    )


def _symptoms(data: ReportData) -> str:
    table = _label_table("Sintomas relatados ao acordar", data.symptoms, "Sintoma")
    if not table:
        return ""
    return f"<section><h2>Sintomas Matinais</h2>{table}</section>"


def _diary_notes(data: ReportData) -> str:
    if not data.diary_notes:
        return ""
    rows = "".join(
        f"<tr><td>{note.day:%d/%m/%Y}</td><td>{_esc(note.label)}</td><td>{_esc(note.text)}</td></tr>"
        for note in data.diary_notes
    )
    return (
        "<section><h2>Anotações do Diário</h2>"
        "<table><thead><tr><th>Data</th><th>Item</th><th>Resposta</th></tr></thead>"
        f"<tbody>{rows}</tbody></table></section>"
    )


def _doctors(data: ReportData) -> str:
    if not data.doctors:
        return ""
    rows = "".join(
        f"<tr><td>{_esc(d.name)}</td><td>{_esc(d.specialty)}</td>"
        f"<td>{_esc(d.crm)}</td><td>{_esc(d.contact)}</td></tr>"
        for d in data.doctors
    )
    return (
        "<section><h2>Equipe Médica</h2>"
        "<table><thead><tr><th>Nome</th><th>Especialidade</th><th>CRM</th><th>Contato</th></tr></thead>"
        f"<tbody>{rows}</tbody></table></section>"
    )


def _medications(data: ReportData) -> str:
    if not data.medications:
        return ""
    rows = "".join(
        f"<tr><td>{_esc(m.name)}</td><td>{_esc(m.dosage)}</td>"
        f"<td>{_esc(m.frequency)}</td><td>{_esc(m.doctor_name)}</td></tr>"
        for m in data.medications
    )
    return (
        "<section><h2>Medicamentos Prescritos</h2>"
        "<table><thead><tr><th>Medicamento</th><th>Posologia</th><th>Frequência</th><th>Médico</th></tr></thead>"
        f"<tbody>{rows}</tbody></table></section>"
    )


def render_html_report(
    data: ReportData,
    periods_text: Optional[str] = None,
    report_id: Optional[str] = None,
    generated_at: Optional[datetime] = None,
) -> str:
    """Render the full report as a standalone HTML string."""
    generated_at = generated_at or data.generated_at
    periods_text = periods_text or format_period_range(data.window)

    error_banner = ""
    if data.status == "error":
        error_banner = (
            '<p class="alert">Não foi possível carregar todos os dados: '
            f"{_esc(data.error or 'erro desconhecido')}</p>"
        )

    report_ref = f" · Relatório {_esc(report_id)}" if report_id else ""

    body = "".join([
        _summary_cards(data),
        _pain_evolution(data),
        _pain_points(data),
        _crisis_episodes(data),
        _rescue_medications(data),
        _crisis_patterns(data),
        _mood_crisis(data),
        _sleep_pain(data),
        _symptoms(data),
        _diary_notes(data),
        _doctors(data),
        _medications(data),
    ])

    return f"""<!DOCTYPE html>
<html lang="pt-BR">
<head>
<meta charset="utf-8">
<meta name="viewport" content="width=device-width, initial-scale=1">
<title>DorLog - Relatório de Saúde - {_esc(data.user_email)}</title>
<style>{_STYLE}</style>
</head>
<body>
<div class="page">
<header><h1>DorLog - Relatório de Saúde</h1><p>Gestão Inteligente da Sua Saúde</p></header>
<p class="meta">Período: {_esc(periods_text)} · Usuário: {_esc(data.user_email)} · Gerado em: {generated_at:%d/%m/%Y %H:%M}{report_ref}</p>
{error_banner}
{body}
<footer>DorLog - Gestão Inteligente da Sua Saúde</footer>
</div>
</body>
</html>
"""
