from .dsl import step, plan, artifact
from .runner import run_steps, provision
from .model import Step, StepStatus, StepOutcome, EnvironmentProbe, RemoteArtifact, RunReport
from .config import Settings

__all__ = [
    "step",
    "plan",
    "artifact",
    "run_steps",
    "provision",
    "Step",
    "StepStatus",
    "StepOutcome",
    "EnvironmentProbe",
    "RemoteArtifact",
    "RunReport",
    "Settings",
]
