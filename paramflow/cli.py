"""CLI for compiling module descriptions into wire and form artifacts."""

from __future__ import annotations

import argparse
import logging
from typing import Any, Sequence

import pandas as pd

from paramflow.config import GeneratorConfig
from paramflow.descriptors import load_module
from paramflow.errors import (
    InvalidConfigError,
    InvalidDescriptorError,
    MalformedVariantError,
    MissingNameError,
    UnsupportedKindError,
)
from paramflow.generator import classify_operation, generate_module, write_artifacts
from paramflow.params import ArrayParam, MapParam, RecordParam, UnionParam, iter_nodes
from paramflow.report import render_report_to_html


def _node_rows(params) -> list[dict[str, Any]]:
    rows = []
    for node in iter_nodes(params):
        detail = ""
        if isinstance(node, RecordParam):
            detail = f"{node.record_name} ({len(node.fields)} field(s))"
        elif isinstance(node, UnionParam):
            detail = ", ".join(m.display_type_name or m.kind for m in node.members)
        elif isinstance(node, (MapParam, ArrayParam)):
            detail = "table" if node.render_as_table else "json"
        rows.append(
            {
                "name": node.name,
                "kind": node.kind,
                "required": node.required,
                "default": node.default_value or "",
                "condition": node.enable_condition.to_json(),
                "detail": detail,
            }
        )
    return rows


def _print_frame(title: str, frame: pd.DataFrame):
    print(f"\n{title}")
    print("-" * len(str(title)))
    if frame.empty:
        print("(none)")
    else:
        print(frame.to_string(index=False))


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Parameter model compiler")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug details to stderr.")
    parser.add_argument("-q", "--quiet", action="store_true", help="Only log errors.")
    sub = parser.add_subparsers(dest="command")

    list_ops = sub.add_parser("list-operations", help="List clients and their operations")
    list_ops.add_argument("--input", required=True, help="Module description JSON file")

    show_params = sub.add_parser("show-params", help="Show the classified parameter tree of one operation")
    show_params.add_argument("--input", required=True)
    show_params.add_argument("--operation", required=True, help="Operation name, or 'init' for a client init")
    show_params.add_argument("--client", help="Client name when several clients declare the operation")
    show_params.add_argument("--budget", type=int, help="Field expansion budget per parameter.")

    generate = sub.add_parser("generate", help="Generate wire and form artifacts")
    generate.add_argument("--input", required=True)
    generate.add_argument("--output-dir", required=True, help="Directory for generated artifacts.")
    generate.add_argument("--html", help="Optional output path for an HTML generation report.")
    generate.add_argument("--budget", type=int, help="Field expansion budget per parameter.")
    generate.add_argument(
        "--no-expand-records",
        dest="expand_records",
        action="store_false",
        default=None,
        help="Render record parameters as JSON text instead of individual fields.",
    )
    generate.add_argument(
        "--output",
        choices=["terminal", "json", "none"],
        default="terminal",
        help="How to emit the generation report to stdout.",
    )

    report = sub.add_parser("report", help="Print the generation report without writing artifacts")
    report.add_argument("--input", required=True)
    report.add_argument("--html", help="Optional output path for an HTML generation report.")
    return parser


def _configure_logging(args) -> None:
    level = logging.WARNING
    if args.verbose:
        level = logging.DEBUG
    elif args.quiet:
        level = logging.ERROR
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def _config_for(module, args) -> GeneratorConfig:
    return GeneratorConfig.from_mapping(
        module.config,
        field_budget=getattr(args, "budget", None),
        expand_records=getattr(args, "expand_records", None),
    )


def _cmd_list_operations(args):
    module = load_module(args.input)
    for client in module.clients:
        print(f"{client.name}\t{client.connection_type}")
        if client.init is not None:
            print(f"  init\t{len(client.init.params)} param(s)")
        for op in client.operations:
            print(f"  {op.name}\t{op.kind}\t{len(op.params)} param(s)")


def _cmd_show_params(args):
    module = load_module(args.input)
    config = _config_for(module, args)
    candidates = []
    for client in module.clients:
        if args.client and client.name != args.client:
            continue
        ops = list(client.operations)
        if client.init is not None:
            ops.append(client.init)
        candidates.extend((client, op) for op in ops if op.name == args.operation)
    if not candidates:
        raise ValueError(f"Unknown operation '{args.operation}'.")
    client, operation = candidates[0]
    classified = classify_operation(operation, config)
    print(f"Client: {client.name}")
    print(f"Operation: {operation.name} ({operation.kind})")
    if classified.skipped:
        print(f"Skipped: {classified.skip_reason} ({classified.skip_detail})")
        return
    _print_frame("Parameters", pd.DataFrame(_node_rows(classified.params)))


def _cmd_generate(args):
    module = load_module(args.input)
    artifacts = generate_module(module, _config_for(module, args))
    written = write_artifacts(artifacts, args.output_dir)
    print(f"Wrote {len(written)} file(s) to {args.output_dir}")
    if args.html:
        html_path = render_report_to_html(artifacts.report, args.html, title=f"{module.name} generation report")
        print(f"HTML report: {html_path}")
    if args.output == "terminal":
        print(artifacts.report.to_text(), end="")
    elif args.output == "json":
        print(artifacts.report.to_frame().to_json(orient="records"))


def _cmd_report(args):
    module = load_module(args.input)
    artifacts = generate_module(module, _config_for(module, args))
    _print_frame("Operations", artifacts.report.to_frame())
    if args.html:
        html_path = render_report_to_html(artifacts.report, args.html, title=f"{module.name} generation report")
        print(f"HTML report: {html_path}")
    print(f"\nTotal: {artifacts.report.included_count} included, {artifacts.report.skipped_count} skipped")


def main(argv: Sequence[str] | None = None):
    parser = _build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args)
    if not args.command:
        parser.print_help()
        return 0
    try:
        if args.command == "list-operations":
            _cmd_list_operations(args)
        elif args.command == "show-params":
            _cmd_show_params(args)
        elif args.command == "generate":
            _cmd_generate(args)
        elif args.command == "report":
            _cmd_report(args)
    except FileNotFoundError as exc:
        parser.error(f"input file not found: {exc.filename}")
    except (
        InvalidDescriptorError,
        MissingNameError,
        InvalidConfigError,
        MalformedVariantError,
        UnsupportedKindError,
        ValueError,
    ) as exc:
        parser.error(str(exc))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
