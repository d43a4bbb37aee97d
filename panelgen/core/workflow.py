from dataclasses import dataclass, field
from enum import Enum


class GenerationStep(str, Enum):
    VALIDATE = "VALIDATE"
    PRISMA_MODEL = "PRISMA_MODEL"
    STRUCTURE_MODEL = "STRUCTURE_MODEL"
    CONTROLLER = "CONTROLLER"
    STRUCTURE_CONTROLLER = "STRUCTURE_CONTROLLER"
    ROUTES = "ROUTES"
    STRUCTURE_ROUTES = "STRUCTURE_ROUTES"
    REGISTER_ROUTES = "REGISTER_ROUTES"
    DYNAMIC_PAGE = "DYNAMIC_PAGE"
    MOUNT_ROUTES = "MOUNT_ROUTES"
    SCHEMA_PUSH = "SCHEMA_PUSH"
    CLIENT_GENERATE = "CLIENT_GENERATE"
    RESTART = "RESTART"
    DONE = "DONE"
    FAILED = "FAILED"


@dataclass(frozen=True)
class StepResult:
    step: GenerationStep
    ok: bool
    message: str
    artifacts: list[str] = field(default_factory=list)
