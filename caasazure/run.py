import json
import logging
import shutil
import subprocess
from typing import Any, List

from caasutil.error_handling import AzureCliError

logger = logging.getLogger(__name__)


def run_az(
        cmd: List[str],
        *,
        capture_output: bool = True,
        json_override: bool | None = None
) -> Any:
    """
    Run an Azure CLI command and return its parsed output.

    All defined sub-functions:
        _resolve_command_path
        _should_expect_json
        _process_success

    Logic:
        1. Resolve path to the 'az' executable.
        2. Determine if JSON output is expected.
        3. Build the final command (adding '--output json' if needed).
        4. Execute the subprocess and block until it exits.
        5. On success, parse JSON (or return {} for empty/non-JSON output).
        6. On failure, raise AzureCliError with the captured stderr. Nothing is retried.

    Args:
        cmd (List[str]): Command starting with "az".
        capture_output (bool): Capture stdout/stderr. Interactive commands pass False.
        json_override (bool | None): Force JSON parsing on or off.

    Returns:
        Any: Parsed JSON (dict, list, str, bool) or {}.

    Raises:
        AzureCliError: If 'az' is not installed or exits non-zero.
    """

    def _resolve_command_path(original_cmd: List[str]) -> List[str]:
        """
        Resolve the actual path to the 'az' executable (az.cmd on Windows).
        """
        resolved = shutil.which(original_cmd[0])
        if not resolved:
            raise AzureCliError(
                f"[run_az] ❌ Azure CLI '{original_cmd[0]}' not found on PATH.",
                cmd=original_cmd
            )
        return [resolved] + original_cmd[1:]

    def _should_expect_json(cmd_list: List[str], capture_flag: bool) -> bool:
        """
        Determine whether to append '--output json', or honor json_override when provided.
        """
        if json_override is not None:
            return json_override
        if not capture_flag:
            return False
        joined = " ".join(cmd_list).lower()
        if " login" in joined or "account set" in joined or "--output" in joined:
            return False
        return True

    def _process_success(raw_stdout: str, expect_flag: bool) -> Any:
        """
        Parse the subprocess output on success. Empty or invalid JSON yields {}.
        """
        if not raw_stdout.strip():
            return {}
        if expect_flag:
            try:
                return json.loads(raw_stdout.strip())
            except json.JSONDecodeError as jde:
                logger.warning(f"[run_az] ⚠️ Expected JSON but got invalid output: {jde}")
                return {}
        return {}

    # --- Logic begins here ---
    if not cmd:
        raise ValueError("run_az: 'cmd' must be a non-empty list")

    resolved_cmd = _resolve_command_path(cmd)
    expect_json = _should_expect_json(cmd, capture_output)
    full_cmd = resolved_cmd + (["--output", "json"] if expect_json else [])
    logger.info(f"[run_az] ▶ Running: {' '.join(cmd)}")

    try:
        completed = subprocess.run(
            full_cmd,
            capture_output=capture_output,
            check=True,
            text=True
        )
    except subprocess.CalledProcessError as ex:
        stderr = (ex.stderr or "").strip()
        raise AzureCliError(
            f"[run_az] ❌ '{' '.join(cmd)}' exited with {ex.returncode}: {stderr}",
            cmd=cmd,
            returncode=ex.returncode,
            stderr=stderr
        ) from ex

    return _process_success(completed.stdout or "", expect_json)
