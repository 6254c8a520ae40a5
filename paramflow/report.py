"""Generation status report: which operations were included or skipped, and why."""

from __future__ import annotations

import html
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

import pandas as pd

BANNER = "=" * 49
RULE = "-" * 49

UNSUPPORTED_PARAMETER_TYPE = "unsupported parameter type"
REPORT_COLUMNS = ["client", "connection", "status", "operation", "resolved_name", "kind", "reason"]


@dataclass
class IncludedOperation:
    original_name: str
    resolved_name: str
    kind: str


@dataclass
class SkippedOperation:
    name: str
    reason: str
    detail: str = ""


@dataclass
class ClientReport:
    client: str
    connection_type: str | None = None
    included: list[IncludedOperation] = field(default_factory=list)
    skipped: list[SkippedOperation] = field(default_factory=list)

    def add_included(self, original_name: str, resolved_name: str, kind: str) -> None:
        self.included.append(IncludedOperation(original_name, resolved_name, kind))

    def add_skipped(self, name: str, reason: str, detail: str = "") -> None:
        self.skipped.append(SkippedOperation(name, reason, detail))


@dataclass
class GenerationReport:
    name: str
    org: str = ""
    version: str = ""
    clients: list[ClientReport] = field(default_factory=list)

    @property
    def included_count(self) -> int:
        return sum(len(client.included) for client in self.clients)

    @property
    def skipped_count(self) -> int:
        return sum(len(client.skipped) for client in self.clients)

    def skip_reasons(self) -> list[str]:
        return [op.reason for client in self.clients for op in client.skipped]

    def to_text(self) -> str:
        lines = [
            BANNER,
            "       Connector Generation Status Report        ",
            BANNER,
            f"Connector : {self.org}/{self.name} v{self.version}",
            "",
        ]
        for client in self.clients:
            header = f"Client: {client.client}"
            if client.connection_type is not None:
                header += f" ({client.connection_type})"
            lines.extend([header, RULE, f"  Included operations ({len(client.included)}):"])
            for op in client.included:
                if op.resolved_name == op.original_name:
                    lines.append(f"    - {op.original_name} [{op.kind}]")
                else:
                    lines.append(f"    - {op.original_name} -> {op.resolved_name} [{op.kind}]")
            if client.skipped:
                lines.extend(["", f"  Skipped operations ({len(client.skipped)}):"])
                for op in client.skipped:
                    lines.append(f"    - {op.name}: {op.reason}")
            lines.extend(["", f"  Summary: {len(client.included)} included, {len(client.skipped)} skipped", ""])
        lines.extend([BANNER, f"Total: {self.included_count} included, {self.skipped_count} skipped", BANNER])
        return "\n".join(lines) + "\n"

    def to_frame(self) -> pd.DataFrame:
        rows = []
        for client in self.clients:
            for op in client.included:
                rows.append(
                    {
                        "client": client.client,
                        "connection": client.connection_type,
                        "status": "included",
                        "operation": op.original_name,
                        "resolved_name": op.resolved_name,
                        "kind": op.kind,
                        "reason": "",
                    }
                )
            for op in client.skipped:
                reason = f"{op.reason}: {op.detail}" if op.detail else op.reason
                rows.append(
                    {
                        "client": client.client,
                        "connection": client.connection_type,
                        "status": "skipped",
                        "operation": op.name,
                        "resolved_name": "",
                        "kind": "",
                        "reason": reason,
                    }
                )
        return pd.DataFrame(rows, columns=REPORT_COLUMNS)


def render_report_to_html(
    report: GenerationReport,
    output_path: str | Path,
    title: str = "Generation Report",
) -> Path:
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    html_parts = [
        "<!DOCTYPE html>",
        "<html>",
        "<head>",
        f"    <title>{html.escape(title)}</title>",
        "    <meta charset='utf-8'>",
        "    <style>",
        "        body { font-family: system-ui, sans-serif; max-width: 1200px; margin: 0 auto; padding: 1.5rem; }",
        "        .section { margin: 1rem 0; padding: 1rem; border: 1px solid #ddd; border-radius: 6px; }",
        "        .section h2 { margin-top: 0; }",
        "        table { width: 100%; border-collapse: collapse; }",
        "        th, td { border-bottom: 1px solid #ddd; text-align: left; padding: 0.45rem; }",
        "        .skipped { color: #9a3412; }",
        "    </style>",
        "</head>",
        "<body>",
        f"    <h1>{html.escape(title)}</h1>",
        f"    <p>{html.escape(f'{report.org}/{report.name} v{report.version}')}</p>",
        f"    <p>Generated on {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}</p>",
    ]

    frame = report.to_frame()
    for client in report.clients:
        rows = frame[frame["client"] == client.client]
        html_parts.append("    <div class='section'>")
        html_parts.append(f"        <h2>{html.escape(client.client)}</h2>")
        html_parts.append(
            f"        <p>{len(client.included)} included, {len(client.skipped)} skipped</p>"
        )
        html_parts.append("        <table>")
        html_parts.append("            <tr>")
        for header in ("status", "operation", "resolved_name", "kind", "reason"):
            html_parts.append(f"                <th>{html.escape(header)}</th>")
        html_parts.append("            </tr>")
        for row in rows.itertuples(index=False):
            css = " class='skipped'" if row.status == "skipped" else ""
            html_parts.append(f"            <tr{css}>")
            for value in (row.status, row.operation, row.resolved_name, row.kind, row.reason):
                html_parts.append(f"                <td>{html.escape(str(value))}</td>")
            html_parts.append("            </tr>")
        html_parts.append("        </table>")
        html_parts.append("    </div>")

    html_parts.append(
        f"    <p>Total: {report.included_count} included, {report.skipped_count} skipped</p>"
    )
    html_parts.extend(["</body>", "</html>"])
    output_path.write_text("\n".join(html_parts), encoding="utf-8")
    return output_path
