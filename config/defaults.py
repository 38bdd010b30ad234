"""Default configuration values."""

# Identity used in structured log lines
SERVICE_NAME = "github-actions-runner"

# Container layout
DEFAULT_CLAUDE_USER = "claude"
DEFAULT_CLAUDE_UID = 1001
DEFAULT_WORKSPACE_DIRNAME = "workspace"
MCP_CONFIG_RELPATH = ".claude/.mcp.json"
ASSISTANT_CONFIG_RELPATH = ".config/claude/config.json"
AGENTS_RELPATH = ".claude/agents"
SKILLS_RELPATH = ".claude/skills"
WORKFLOWS_RELPATH = ".github/workflows"
SKILL_SEEKER_SERVER = "skill-seeker"

# Git identity fallbacks
DEFAULT_GIT_USER_NAME = "Claude Code Runner"
DEFAULT_GIT_USER_EMAIL = "claude@zeeke-ai.local"

# Observability
DEFAULT_OTEL_CONFIG_PATH = "/etc/otel/config.yaml"
DEFAULT_OTEL_LOG_PATH = "/tmp/otelcol.log"
DEFAULT_METRICS_PORT = 8889
OTEL_PROCESS_PATTERN = "otelcol"
OTEL_STARTUP_WAIT_SECONDS = 2.0
METRICS_PROBE_TIMEOUT_SECONDS = 3.0

# Readiness thresholds
MIN_FREE_DISK_GB = 1  # healthy only when strictly above
MAX_MEMORY_PERCENT = 80  # healthy only when strictly below
HEALTH_REPORT_PATH = "/tmp/health-check.json"
HEALTH_COMMAND = "/usr/local/bin/health-check"
DEFAULT_HEALTH_SERVER_HOST = "0.0.0.0"
DEFAULT_HEALTH_SERVER_PORT = 8080

# cgroup memory accounting (v1 first, v2 fallback)
CGROUP_V1_LIMIT = "/sys/fs/cgroup/memory/memory.limit_in_bytes"
CGROUP_V1_USAGE = "/sys/fs/cgroup/memory/memory.usage_in_bytes"
CGROUP_V2_LIMIT = "/sys/fs/cgroup/memory.max"
CGROUP_V2_USAGE = "/sys/fs/cgroup/memory.current"

# Timeout for version/probe commands in seconds
COMMAND_TIMEOUT_SECONDS = 30

# Host-side container management
COMPOSE_FILE = "docker-compose.runner.yml"
SERVICE_CONTAINER = "gha-runner"
LOCAL_IMAGE_NAME = "zeeke-ai-runner"
RUNNER_DOCKERFILE = "Dockerfile.runner"
BUILD_SCRIPT = "docker/build.sh"
SECRETS_FILE = ".secrets"

# Image build
DEFAULT_IMAGE_NAME = "axyzlabs/runner"
DEFAULT_IMAGE_TAG = "latest"
DEFAULT_DOCKERFILE = "Dockerfile"
BASE_IMAGE = "ghcr.io/catthehacker/ubuntu:act-latest"

# Assertion suites
TEST_CONTAINER_NAME = "zeeke-ai-runner-test"
CONTAINER_WORKSPACE = "/home/claude/workspace"
DEFAULT_SCAN_SEVERITY = "HIGH,CRITICAL"
TRIVY_VERSION = "0.48.3"
TRIVY_DOWNLOAD_URL = (
    "https://github.com/aquasecurity/trivy/releases/download/"
    "v{version}/trivy_{version}_Linux-64bit.tar.gz"
)

# Expected DevOps tool versions (mismatches warn, never fail)
EXPECTED_VERSIONS = {
    "aws": "2.15.17",
    "terraform": "1.7.3",
    "tflint": "0.50.3",
    "kubectl": "1.29.2",
    "helm": "3.14.2",
    "k9s": "0.32.4",
    "docker-compose": "2.24.6",
    "yq": "4.42.1",
    "jq": "1.7.1",
}
EXPECTED_VERSIONS_ENV = "EXPECTED_VERSIONS_FILE"
