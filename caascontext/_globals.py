from pathlib import Path

# ─── Deployment Defaults ─────────────────────────────────────────
DEFAULT_DEPLOYMENT_NAME = "CaasBase"
DEFAULT_TEMPLATE_FILE = Path("SFDeployTemplate.json")
DEFAULT_VM_INSTANCE_COUNT = 3
DEFAULT_REGISTRY_SKU = "Basic"
REGISTRY_SKUS = ("Basic", "Standard", "Premium")

# ─── Config and Log Paths ────────────────────────────────────────
DEFAULT_CFG_FILE = Path("caasbase.toml")
CFG_SECTION = "deploy"
ENV_PREFIX = "CAASBASE"
DEFAULT_LOG_DIR = Path("logs")
DEFAULT_LOG_LEVEL = "INFO"
