"""Read-side projection of a PropGEN workflow onto the dashboard progress steps."""

from dataclasses import asdict, dataclass
from enum import Enum
from typing import List, Optional, Union

from app.models.propgen_workflow import PropGENWorkflow


class WorkflowStatus(str, Enum):
    NOT_STARTED = "not_started"
    RISK_ASSESSMENT_COMPLETED = "risk_assessment_completed"
    INVESTMENT_ANALYSIS_COMPLETED = "investment_analysis_completed"
    BENEFITS_COMPARISON_COMPLETED = "benefits_comparison_completed"
    ADDITIONAL_FEES_CONFIGURED = "additional_fees_configured"
    SPIN_CONTENT_GENERATED = "spin_content_generated"
    PROPOSAL_PENDING_APPROVAL = "proposal_pending_approval"
    PROPOSAL_APPROVED = "proposal_approved"
    PROPOSAL_GENERATED = "proposal_generated"
    PROPOSAL_SENT = "proposal_sent"


# Declaration order of WorkflowStatus is the forward direction of the workflow.
STATUS_RANK = {status.value: rank for rank, status in enumerate(WorkflowStatus)}


@dataclass(frozen=True)
class StepDefinition:
    id: str
    title: str
    description: str


@dataclass(frozen=True)
class WorkflowStep:
    id: str
    title: str
    status: str  # completed|current|pending
    description: str

    def to_dict(self) -> dict:
        return asdict(self)


STEPS = [
    StepDefinition("assessment", "Assessment", "Complete the client risk assessment"),
    StepDefinition("investment_analysis", "Investment Analysis", "Model the client's cost of doing nothing"),
    StepDefinition("benefits_comparison", "Benefits Comparison", "Compare current and proposed benefits"),
    StepDefinition("additional_fees", "Additional Fees", "Configure administration and setup fees"),
    StepDefinition("spin_selling", "SPIN Selling", "Review the generated SPIN selling narrative"),
    StepDefinition("proposal", "Proposal", "Generate, approve and send the proposal"),
]

STATUS_STEP_INDEX = {
    WorkflowStatus.NOT_STARTED.value: 0,
    WorkflowStatus.RISK_ASSESSMENT_COMPLETED.value: 1,
    WorkflowStatus.INVESTMENT_ANALYSIS_COMPLETED.value: 2,
    WorkflowStatus.BENEFITS_COMPARISON_COMPLETED.value: 3,
    WorkflowStatus.ADDITIONAL_FEES_CONFIGURED.value: 4,
    WorkflowStatus.SPIN_CONTENT_GENERATED.value: 5,
    WorkflowStatus.PROPOSAL_PENDING_APPROVAL.value: 5,
    WorkflowStatus.PROPOSAL_APPROVED.value: 6,
    WorkflowStatus.PROPOSAL_GENERATED.value: 6,
    WorkflowStatus.PROPOSAL_SENT.value: 6,
}


def current_step_index(status: Optional[str]) -> int:
    if not status:
        return 0
    return STATUS_STEP_INDEX.get(status, 0)


def project_status(workflow: Union[PropGENWorkflow, str, None]) -> List[WorkflowStep]:
    """Map a workflow (or a bare status string) to the six ordered progress steps.

    An index past the last step means every step is completed.
    """
    if workflow is None or isinstance(workflow, str):
        status = workflow
    else:
        status = workflow.status

    current = current_step_index(status)

    steps = []
    for index, definition in enumerate(STEPS):
        if index < current:
            step_status = "completed"
        elif index == current:
            step_status = "current"
        else:
            step_status = "pending"

        steps.append(
            WorkflowStep(
                id=definition.id,
                title=definition.title,
                status=step_status,
                description=definition.description,
            )
        )

    return steps
