import json
import logging
from pathlib import Path
from typing import Any, Dict

from azure.mgmt.resource.resources.models import (
    Deployment,
    DeploymentMode,
    DeploymentProperties,
)

from caasazure.handles import DeploymentResult, ResourceGroupHandle
from caasazure.parameters import REQUIRED_KEYS, ParameterTable
from caasazure.session import AzureSession
from caasutil.error_handling import (
    DeploymentError,
    MissingInputError,
    ParameterAssemblyError,
    surface,
)

logger = logging.getLogger(__name__)

SUCCEEDED = "Succeeded"


class TemplateDeployment:
    """
    Submits the ARM template with the assembled parameter table and waits for a terminal state.
    The template itself is passed through untouched; the provider validates it.
    """

    @staticmethod
    def load_template(template_file: Path) -> Dict[str, Any]:
        path = Path(template_file)
        try:
            return json.loads(path.read_text(encoding="utf-8-sig"))
        except FileNotFoundError as e:
            raise MissingInputError(f"[TemplateDeployment] ❌ Template file not found: {path}") from e
        except json.JSONDecodeError as e:
            raise DeploymentError(f"[TemplateDeployment] ❌ Template {path} is not valid JSON: {e}") from e

    @staticmethod
    def _outputs(properties) -> Dict[str, Any]:
        outputs = getattr(properties, "outputs", None) or {}
        return {k: (v.get("value") if isinstance(v, dict) else v) for k, v in outputs.items()}

    @staticmethod
    def submit(
            session: AzureSession,
            group: ResourceGroupHandle,
            parameters: ParameterTable,
            template_file: Path,
            deployment_name: str
    ) -> DeploymentResult:
        """
        Run an Incremental deployment of `template_file` into `group`.

        Returns:
            DeploymentResult: Name, ID, terminal state and outputs.

        Raises:
            ParameterAssemblyError: The table is incomplete; nothing is submitted.
            DeploymentError: Submission failed or the deployment did not succeed.
        """
        missing = [k for k in REQUIRED_KEYS if k not in parameters]
        if missing:
            raise ParameterAssemblyError(
                f"[TemplateDeployment] ❌ Refusing to deploy without: {', '.join(missing)}"
            )

        template = TemplateDeployment.load_template(template_file)
        deployment = Deployment(
            properties=DeploymentProperties(
                mode=DeploymentMode.INCREMENTAL,
                template=template,
                parameters=parameters.to_arm(),
            )
        )

        logger.info(
            f"[TemplateDeployment] 🚀 Deploying '{deployment_name}' from {template_file} into {group.name}..."
        )
        with surface("TemplateDeployment", DeploymentError):
            poller = session.resources().deployments.begin_create_or_update(
                group.name, deployment_name, deployment
            )
            result = poller.result()

        state = getattr(result.properties, "provisioning_state", None) or "Unknown"
        if state != SUCCEEDED:
            error = getattr(result.properties, "error", None)
            detail = getattr(error, "message", None) or error or "no diagnostic returned"
            raise DeploymentError(f"[TemplateDeployment] ❌ Deployment '{deployment_name}' ended {state}: {detail}")

        logger.info(f"[TemplateDeployment] ✅ Deployment '{deployment_name}' {state}.")
        return DeploymentResult(
            name=result.name or deployment_name,
            id=result.id or "",
            provisioning_state=state,
            outputs=TemplateDeployment._outputs(result.properties),
        )
