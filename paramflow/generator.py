"""Per-client generation: classify operations, resolve names, render both artifacts, collect the report."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

from paramflow.classifier import classify_parameter, normalize_default
from paramflow.config import GeneratorConfig
from paramflow.contracts import ClientSpec, ModuleSpec, OperationSpec
from paramflow.form import dump_form, render_config_form, render_operation_form
from paramflow.naming import (
    NameRegistry,
    PathSegment,
    avoid_param_clash,
    display_name_for,
    parse_path_segments,
    resolve_operation_name,
)
from paramflow.params import ParamNode
from paramflow.progress import track_step
from paramflow.report import UNSUPPORTED_PARAMETER_TYPE, ClientReport, GenerationReport
from paramflow.wire import (
    ParameterDescriptor,
    WireDeclaration,
    escape_xml,
    format_parameter_elements,
    format_properties,
    render_parameter_descriptors,
    render_path_params,
    render_wire,
)

logger = logging.getLogger(__name__)

REPORT_FILE_NAME = "generation-report.log"


@dataclass
class ClassifiedOperation:
    operation: OperationSpec
    params: list[ParamNode] = field(default_factory=list)
    skip_reason: str | None = None
    skip_detail: str = ""

    @property
    def skipped(self) -> bool:
        return self.skip_reason is not None


@dataclass
class OperationArtifacts:
    operation: OperationSpec
    name: str
    display_name: str
    params: list[ParamNode]
    path_params: list[PathSegment]
    wire: list[WireDeclaration]
    parameter_descriptors: list[ParameterDescriptor]
    form: dict[str, Any]

    def to_xml(self) -> str:
        lines = [f'<template name="{escape_xml(self.name)}">']
        if self.parameter_descriptors:
            lines.append("    " + format_parameter_elements(self.parameter_descriptors))
        lines.append("    <sequence>")
        lines.append(f'        <property name="operationName" value="{escape_xml(self.operation.name)}"/>')
        lines.append(f'        <property name="operationKind" value="{escape_xml(self.operation.kind)}"/>')
        declarations = render_path_params(self.path_params) + self.wire
        if declarations:
            lines.append("        " + format_properties(declarations))
        lines.append("    </sequence>")
        lines.append("</template>")
        return "\n".join(lines) + "\n"


@dataclass
class ClientArtifacts:
    client: ClientSpec
    init: OperationArtifacts | None
    operations: list[OperationArtifacts]
    report: ClientReport


@dataclass
class ModuleArtifacts:
    module: ModuleSpec
    clients: list[ClientArtifacts]
    report: GenerationReport


def _is_required(param) -> bool:
    return not param.defaultable and normalize_default(param.default) is None


def classify_operation(operation: OperationSpec, config: GeneratorConfig | None = None) -> ClassifiedOperation:
    """Classify every parameter; an unrepresentable required parameter skips the whole operation."""
    config = config or GeneratorConfig()
    result = ClassifiedOperation(operation)
    for param in operation.params:
        node = classify_parameter(param, len(result.params), config.field_budget)
        if node is not None:
            result.params.append(node)
            continue
        if _is_required(param):
            result.params = []
            result.skip_reason = UNSUPPORTED_PARAMETER_TYPE
            result.skip_detail = f"{param.name} ({param.type.kind})"
            return result
        logger.debug("Dropping optional parameter %s of %s: unsupported kind %s",
                     param.name, operation.name, param.type.kind)
    return result


def _render_operation(classified: ClassifiedOperation, name: str, config: GeneratorConfig) -> OperationArtifacts:
    operation = classified.operation
    path_params = [seg for seg in parse_path_segments(operation.path) if seg.is_param]
    title = display_name_for(operation, name)
    return OperationArtifacts(
        operation=operation,
        name=name,
        display_name=title,
        params=classified.params,
        path_params=path_params,
        wire=render_wire(classified.params, expand_records=config.expand_records),
        parameter_descriptors=render_parameter_descriptors(
            classified.params, expand_records=config.expand_records
        ),
        form=render_operation_form(
            name,
            title,
            classified.params,
            path_params,
            help_text=operation.doc,
            expand_records=config.expand_records,
        ),
    )


def _render_init(classified: ClassifiedOperation, connection: str, config: GeneratorConfig) -> OperationArtifacts:
    operation = classified.operation
    return OperationArtifacts(
        operation=operation,
        name=connection,
        display_name=connection,
        params=classified.params,
        path_params=[],
        wire=render_wire(classified.params, scope=connection, expand_records=config.expand_records),
        parameter_descriptors=render_parameter_descriptors(
            classified.params, expand_records=config.expand_records
        ),
        form=render_config_form(
            connection,
            connection,
            classified.params,
            help_text=operation.doc,
            expand_records=config.expand_records,
        ),
    )


def _skip(report: ClientReport, classified: ClassifiedOperation) -> None:
    operation = classified.operation
    logger.info(
        "Skipping function '%s' due to %s: %s",
        operation.name,
        classified.skip_reason,
        classified.skip_detail,
    )
    report.add_skipped(operation.name, classified.skip_reason, classified.skip_detail)


def generate_client(
    client: ClientSpec,
    config: GeneratorConfig | None = None,
    metadata: dict[str, Any] | None = None,
) -> ClientArtifacts:
    config = config or GeneratorConfig()
    connection = config.connection_type or client.connection_type
    report = ClientReport(client.name, connection)

    init = None
    if client.init is not None:
        with track_step(metadata, f"{client.name}.init", "Classify and render init"):
            classified = classify_operation(client.init, config)
            if classified.skipped:
                _skip(report, classified)
            else:
                init = _render_init(classified, connection, config)
                report.add_included(client.init.name, connection, client.init.kind)

    registry = NameRegistry()
    operations: list[OperationArtifacts] = []
    for operation in client.operations:
        with track_step(metadata, f"{client.name}.{operation.name}", "Classify and render operation"):
            classified = classify_operation(operation, config)
            if classified.skipped:
                _skip(report, classified)
                continue
            name = resolve_operation_name(operation) or operation.name
            name = avoid_param_clash(name, operation)
            if config.module_uses_dotted_names():
                name = name.replace(".", "_")
            name = registry.reserve(name)
            operations.append(_render_operation(classified, name, config))
            report.add_included(operation.name, name, operation.kind)

    return ClientArtifacts(client=client, init=init, operations=operations, report=report)


def generate_module(
    module: ModuleSpec,
    config: GeneratorConfig | None = None,
    metadata: dict[str, Any] | None = None,
) -> ModuleArtifacts:
    if config is None:
        config = GeneratorConfig.from_mapping(module.config)
    if not config.module_name:
        config = replace(config, module_name=module.name)
    report = GenerationReport(module.name, module.org, module.version)
    clients = []
    for client in module.clients:
        artifacts = generate_client(client, config, metadata)
        report.clients.append(artifacts.report)
        clients.append(artifacts)
    logger.info(
        "Generated %s: %d operation(s) included, %d skipped",
        module.name,
        report.included_count,
        report.skipped_count,
    )
    return ModuleArtifacts(module=module, clients=clients, report=report)


def write_artifacts(artifacts: ModuleArtifacts, output_dir: str | Path) -> list[Path]:
    """Write function, form, connection and report files; returns the paths written."""
    out = Path(output_dir)
    for sub in ("functions", "uischema", "config"):
        (out / sub).mkdir(parents=True, exist_ok=True)

    # Operation file names are only unique per client.
    prefix_by_client = len(artifacts.clients) > 1
    written: list[Path] = []
    for client in artifacts.clients:
        prefix = f"{client.report.connection_type}_" if prefix_by_client else ""
        if client.init is not None:
            written.append(_write(out / "config" / f"{client.init.name}.xml", client.init.to_xml()))
            written.append(_write(out / "uischema" / f"{client.init.name}.json", dump_form(client.init.form)))
        for op in client.operations:
            written.append(_write(out / "functions" / f"{prefix}{op.name}.xml", op.to_xml()))
            written.append(_write(out / "uischema" / f"{prefix}{op.name}.json", dump_form(op.form)))
    written.append(_write(out / REPORT_FILE_NAME, artifacts.report.to_text()))
    logger.info("Wrote %d artifact file(s) to %s", len(written), out)
    return written


def _write(path: Path, text: str) -> Path:
    path.write_text(text, encoding="utf-8")
    return path
