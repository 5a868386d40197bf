from .step_00_preflight import PreflightStep
from .step_10_detect_hardware import DetectHardwareStep
from .step_20_install_packages import InstallPackagesStep
from .step_30_install_model_runner import InstallModelRunnerStep
from .step_40_tune_runner import TuneRunnerStep
from .step_50_install_tools import InstallToolsStep
from .step_60_install_assistant import InstallAssistantStep
from .step_70_recommend_models import RecommendModelsStep
from .step_80_pull_models import PullModelsStep
from .step_85_save_script_copy import SaveScriptCopyStep
from .step_87_post_install_checks import PostInstallChecksStep
from .step_90_summary import SummaryStep

__all__ = [
    "PreflightStep",
    "DetectHardwareStep",
    "InstallPackagesStep",
    "InstallModelRunnerStep",
    "TuneRunnerStep",
    "InstallToolsStep",
    "InstallAssistantStep",
    "RecommendModelsStep",
    "PullModelsStep",
    "SaveScriptCopyStep",
    "PostInstallChecksStep",
    "SummaryStep",
]
