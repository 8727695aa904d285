"""
Text Rendering - Human readable summaries of assessments and backtests.

Features:
- Contagion, depeg and consensus summaries for logs and prompt enrichment
- One-screen risk assessment summary for the CLI
- Backtest timeline per event and a combined report table
"""

from itertools import combinations
from typing import List

from derisk.backtest.backtester import BacktestReport, BacktestResult
from derisk.core.consensus import ConsensusResult
from derisk.core.contagion import ContagionAnalysis
from derisk.core.depeg import DepegAnalysis
from derisk.core.pipeline import RiskAssessment
from derisk.core.protocols import Protocol
from derisk.core.severity import AlertLevel

# Timeline markers
SEVERITY_MARKERS = {
    AlertLevel.CRITICAL: "!!!",
    AlertLevel.WARNING: " !!",
    AlertLevel.WATCH: "  ~",
    AlertLevel.NONE: "   ",
}

DIVIDER = "─" * 60


def format_usd_billions(amount: float) -> str:
    """$1.23B"""
    return f"${amount / 1e9:.2f}B"


def _stablecoin_status(deviation_percent: float) -> str:
    if deviation_percent < 0.5:
        return "STABLE"
    if deviation_percent < 2:
        return "WATCH"
    return "DEPEGGING"


def format_contagion_summary(analysis: ContagionAnalysis) -> str:
    """
    Format contagion analysis as text.

    Args:
        analysis: Result of analyze_contagion

    Returns:
        Multi-line summary with blast radius and pairwise correlations
    """
    lines = [
        "CROSS-PROTOCOL CONTAGION ANALYSIS:",
        f"Aggregate Contagion Risk: {analysis.aggregate_contagion_risk}/100",
        f"Worst-Case System Loss: {format_usd_billions(analysis.worst_case_system_loss)}",
        "",
        "Blast Radius (30% failure scenario):",
    ]
    for protocol, loss in analysis.blast_radius.items():
        lines.append(f"  {protocol.display_name}: {format_usd_billions(loss)} at risk")

    lines.append("")
    lines.append("Correlation Matrix:")
    for a, b in combinations(list(Protocol), 2):
        correlation = analysis.correlation_matrix[a][b]
        lines.append(f"  {a.display_name} <-> {b.display_name}: {correlation:.2f}")

    return "\n".join(lines)


def format_depeg_summary(analysis: DepegAnalysis) -> str:
    lines = [
        "STABLECOIN DEPEG ANALYSIS:",
        f"Depeg Risk Score: {analysis.depeg_risk_score}/100",
        f"Average Deviation: {analysis.avg_deviation * 100:.2f}%",
        "",
        "Stablecoin Status:",
    ]
    for coin in analysis.stablecoins:
        deviation = coin.deviation * 100
        lines.append(
            f"  {coin.symbol}: ${coin.price:.4f} "
            f"({_stablecoin_status(deviation)}, {deviation:.2f}% deviation)"
        )

    if analysis.alerts:
        lines.append("")
        lines.append("ACTIVE ALERTS:")
        for alert in analysis.alerts:
            lines.append(
                f"  [{alert.severity.value}] {alert.symbol}: "
                f"{alert.deviation_percent:.2f}% off peg - {alert.risk_factor}"
            )

    return "\n".join(lines)


def format_consensus_lines(result: ConsensusResult) -> List[str]:
    """Consensus fields plus one line per model, outliers tagged."""
    lines = [
        f"  Consensus Score:   {result.consensus_score}/100",
        f"  Confidence Level:  {result.confidence_level}%",
        f"  Method:            {result.method.value}",
        f"  Score Spread:      {result.spread:g} points",
    ]
    for model in result.scores:
        status = f"{model.score:g}/100" if model.available else "UNAVAILABLE"
        tag = " [OUTLIER]" if model.model in result.outliers else ""
        lines.append(f"  {model.model}: {status}{tag}")
    return lines


def format_risk_assessment(assessment: RiskAssessment) -> str:
    """One-screen summary of a live assessment."""
    breaker = "TRIGGERED" if assessment.circuit_breaker_triggered else "armed"
    lines = [
        f"RISK ASSESSMENT: {assessment.score}/100 [{assessment.alert_level.value}]",
        f"Circuit Breaker: {breaker}",
        DIVIDER,
    ]
    lines.extend(format_consensus_lines(assessment.consensus))
    lines.append(DIVIDER)
    lines.append(format_contagion_summary(assessment.contagion))
    lines.append(DIVIDER)
    lines.append(format_depeg_summary(assessment.depeg))
    return "\n".join(lines)


def format_backtest_result(result: BacktestResult) -> str:
    """
    Format one event replay with its daily timeline.

    Args:
        result: Result of backtest_event

    Returns:
        Header, summary metrics and one line per scored day
    """
    breaker = result.circuit_breaker_date or "Not triggered"
    lines = [
        DIVIDER,
        f"  BACKTEST: {result.event}",
        f"  Event Date: {result.event_date}",
        DIVIDER,
        "",
        f"  {result.description}",
        "",
        "  RESULTS:",
        f"  First Warning:        {result.first_alert_date} ({result.first_alert_days_before} days before)",
        f"  Circuit Breaker:      {breaker} ({result.circuit_breaker_days_before} days before)",
        f"  Peak Risk Score:      {result.peak_risk_score}/100",
        f"  Actual Losses:        {format_usd_billions(result.actual_losses_usd)}",
        f"  Prevented Losses:     {format_usd_billions(result.prevented_losses_usd)}",
        f"  Effectiveness:        {result.effectiveness}%",
        f"  False Positives:      {result.false_positives} days",
        "",
        "  TIMELINE:",
    ]

    for day in result.timeline:
        marker = SEVERITY_MARKERS[day.alert_level]
        lines.append(
            f"  {marker} {day.date} [D-{day.days_before_event:>2}] "
            f"Score: {day.consensus_score:>3}/100 "
            f"Contagion: {day.contagion_risk:>3} "
            f"Depeg: {day.depeg_risk:>3} "
            f"{day.alert_level.value:<8} {day.notes}"
        )

    return "\n".join(lines)


def format_backtest_report(report: BacktestReport) -> str:
    lines = [
        "DeRisk Historical Backtest Report",
        DIVIDER,
        f"Events Detected:        {report.events_detected}/{report.total_events}",
        f"Avg Alert Lead Time:    {report.average_lead_time:.1f} days",
        f"Avg Effectiveness:      {report.average_effectiveness:.0f}%",
        f"Total Prevented Losses: {format_usd_billions(report.total_prevented_losses)}",
        "",
        f"{'Event':<24} {'Lead Time':<10} {'Prevented':<11} {'Effectiveness':<13}",
        DIVIDER,
    ]

    for r in report.results:
        lead = f"{r.first_alert_days_before} days"
        effectiveness = f"{r.effectiveness}%"
        lines.append(
            f"{r.event:<24} {lead:<10} {format_usd_billions(r.prevented_losses_usd):<11} "
            f"{effectiveness:<13}"
        )

    lines.append(DIVIDER)
    lines.append(
        f"Combined: could have prevented {format_usd_billions(report.total_prevented_losses)} "
        f"across {report.total_events} events."
    )
    return "\n".join(lines)
