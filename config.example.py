# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Do NOT commit real tokens. Put them in .env (local, gitignored).
"""

ENV_VARS = {
    # App / logging
    "WORKFLOW_APP_NAME": "App display name (default: service-workflow).",
    "WORKFLOW_LOG_LEVEL": "Console logging level (default: INFO). The log file always gets DEBUG.",
    "WORKFLOW_DATA_DIR": "Local data directory for logs (default: .local/workflow).",
    # Backend
    "WORKFLOW_API_BASE_URL": (
        "Base URL of the church-service API. Falls back to API_URL. "
        "Empty => offline in-memory backend."
    ),
    "WORKFLOW_API_TOKEN": "Optional bearer token sent with every request.",
    "WORKFLOW_HTTP_TIMEOUT_SECONDS": "Per-request timeout (default: 10).",
    # Sync cadence
    "WORKFLOW_POLL_VISIBLE_SECONDS": "Refresh interval while the dashboard is visible (default: 10).",
    "WORKFLOW_POLL_HIDDEN_SECONDS": "Refresh interval while the dashboard is hidden (default: 30).",
    # Actions
    "WORKFLOW_QR_UPLOAD_DELAY_SECONDS": "Simulated QR upload duration (default: 1.5).",
    # Console
    "WORKFLOW_CONSOLE_ENABLED": "Run the interactive console (true/false, default: true).",
    "WORKFLOW_ROLE": "Role to act as on startup (pastor, liturgy, translation, beamer, treasurer).",
}
