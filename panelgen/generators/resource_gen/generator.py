"""Orchestrator for resource generation."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from panelgen.bootstrap.patcher import RouteMount, register_routes_in_server, resource_mounts
from panelgen.core.config import Settings, settings
from panelgen.core.errors import AppError, GenerationError
from panelgen.core.workflow import GenerationStep, StepResult
from panelgen.generators.resource_gen.render_controller import (
    render_controller,
    render_structure_controller,
)
from panelgen.generators.resource_gen.render_model import render_prisma_model, render_structure_model
from panelgen.generators.resource_gen.render_routes import (
    render_endpoints,
    render_routes,
    render_structure_routes,
)
from panelgen.generators.resource_gen.types import GeneratedFile, ResourceDescriptor
from panelgen.generators.resource_gen.utils import route_name
from panelgen.generators.resource_gen.writer import write_files
from panelgen.schema.merge import add_model_to_schema

log = logging.getLogger(__name__)


@dataclass
class GenerationResult:
    resource_name: str
    files: List[GeneratedFile]
    endpoints: Dict[str, str]
    mounts: List[RouteMount]
    schema_changed: bool = False
    steps: List[StepResult] = field(default_factory=list)


def render_resource_files(descriptor: ResourceDescriptor, package: str = "resources") -> List[GeneratedFile]:
    """Handler and route modules for the resource and its structure, relative to the resources dir."""
    route = route_name(descriptor.name)
    return [
        GeneratedFile(
            path=f"{route}/{route}_controller.py",
            content=render_controller(descriptor.name, descriptor.fields, descriptor.resource_type),
        ),
        GeneratedFile(
            path=f"{route}/{route}_structure_controller.py",
            content=render_structure_controller(descriptor.name),
        ),
        GeneratedFile(
            path=f"{route}/{route}_routes.py",
            content=render_routes(descriptor.name, descriptor.fields, descriptor.resource_type, package),
        ),
        GeneratedFile(
            path=f"{route}/{route}_structure_routes.py",
            content=render_structure_routes(descriptor.name, package),
        ),
    ]


def _run_step(
    descriptor: ResourceDescriptor,
    step: GenerationStep,
    action: Callable[[], Optional[object]],
    steps: List[StepResult],
    artifacts: Optional[List[str]] = None,
):
    extra = {"resource": descriptor.name, "step": step.value}
    try:
        value = action()
    except AppError:
        steps.append(StepResult(step=step, ok=False, message="failed"))
        log.exception("Generation step failed", extra=extra)
        raise
    except Exception as e:
        steps.append(StepResult(step=step, ok=False, message=str(e)))
        log.exception("Generation step failed", extra=extra)
        raise GenerationError.from_exception("Failed to generate resource", e) from e
    steps.append(StepResult(step=step, ok=True, message="ok", artifacts=artifacts or []))
    log.info("Generation step done", extra=extra)
    return value


def generate_resource(descriptor: ResourceDescriptor, cfg: Settings = settings) -> GenerationResult:
    """
    Write everything a new resource needs, in order:
    schema model, structure model, handler/route modules, server registration.

    Steps are not rolled back: a failure leaves earlier artifacts in place and
    raises GenerationError.
    """
    steps: List[StepResult] = []
    schema_file = cfg.schema_file

    model_changed = _run_step(
        descriptor, GenerationStep.PRISMA_MODEL,
        lambda: add_model_to_schema(schema_file, render_prisma_model(descriptor.name, descriptor.fields)),
        steps, [str(schema_file)],
    )
    structure_changed = _run_step(
        descriptor, GenerationStep.STRUCTURE_MODEL,
        lambda: add_model_to_schema(schema_file, render_structure_model(descriptor.name)),
        steps, [str(schema_file)],
    )

    files = render_resource_files(descriptor, cfg.generated_package)
    file_steps = [
        GenerationStep.CONTROLLER,
        GenerationStep.STRUCTURE_CONTROLLER,
        GenerationStep.ROUTES,
        GenerationStep.STRUCTURE_ROUTES,
    ]
    for step, generated in zip(file_steps, files):
        _run_step(
            descriptor, step,
            lambda generated=generated: write_files([generated], cfg.generated_root),
            steps, [generated.path],
        )

    mounts = resource_mounts(descriptor.name, cfg.generated_package)
    _run_step(
        descriptor, GenerationStep.REGISTER_ROUTES,
        lambda: register_routes_in_server(cfg.server_file, mounts),
        steps, [str(cfg.server_file)],
    )

    return GenerationResult(
        resource_name=descriptor.name,
        files=files,
        endpoints=render_endpoints(descriptor.name, descriptor.fields, descriptor.resource_type),
        mounts=mounts,
        schema_changed=bool(model_changed or structure_changed),
        steps=steps,
    )
