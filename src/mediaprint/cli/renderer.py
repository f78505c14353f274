"""Rich renderers for scan reports and store statistics."""

from rich.console import Console
from rich.table import Table

from mediaprint.models.core import ResolutionMethod
from mediaprint.models.fingerprint import StoreStats
from mediaprint.models.scan import ScanPhase, ScanReport

METHOD_STYLES = {
    ResolutionMethod.HASH_EXACT: "green bold",
    ResolutionMethod.TITLE_EXACT: "green",
    ResolutionMethod.TITLE_FUZZY: "yellow",
    ResolutionMethod.UNRESOLVED: "red",
}


def render_results(report: ScanReport, console: Console | None = None) -> None:
    """Render the results of a scan as a table followed by a summary."""
    console = console or Console()

    table = Table(title=f"Scan: {report.root}")
    table.add_column("File", style="cyan")
    table.add_column("Kind")
    table.add_column("Method", style="bold")
    table.add_column("Title", style="green")
    table.add_column("Year")
    table.add_column("Confidence", justify="right")
    table.add_column("Shared")

    for result in report.results:
        metadata = result.resolved_metadata or {}
        table.add_row(
            result.candidate.name,
            result.candidate.kind.value,
            result.method.value,
            str(metadata.get("title", "")),
            str(metadata.get("year", "")),
            f"{result.confidence:.2f}" if result.resolved else "-",
            "yes" if result.submitted else "",
            style=METHOD_STYLES.get(result.method, "white"),
        )
    console.print(table)

    resolved = sum(1 for result in report.results if result.resolved)
    console.print(
        f"Files: {len(report.candidates)} | Resolved: {resolved} | "
        f"Errors: {len(report.errors)}",
        markup=False,
    )
    for error in report.errors:
        console.print(f"  {error}", style="red", markup=False)
    if report.progress.phase == ScanPhase.ERROR:
        label = "Scan cancelled" if report.cancelled else "Scan failed"
        console.print(label, style="red bold")


def render_stats(stats: StoreStats, console: Console | None = None) -> None:
    """Render fingerprint store statistics."""
    console = console or Console()

    table = Table(title="Fingerprint store")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Hashes", str(stats.total_hashes))
    table.add_row("Average confidence", f"{stats.average_confidence:.2f}")
    table.add_row("Submissions", str(stats.total_submissions))
    table.add_row("Queries", str(stats.total_queries))
    table.add_row("Submissions (7 days)", str(stats.recent_submissions))
    console.print(table)

    if stats.top_contributors:
        contributors = Table(title="Top contributors")
        contributors.add_column("Submitter", style="cyan")
        contributors.add_column("Records", justify="right")
        for bucket in stats.top_contributors:
            contributors.add_row(bucket.submitter_prefix, str(bucket.contribution_count))
        console.print(contributors)
