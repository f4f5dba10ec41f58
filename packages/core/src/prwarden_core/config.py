import fnmatch
import logging
import os
from pathlib import Path
from typing import Optional

import yaml

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM_MESSAGE = """You are `prwarden`, a language model trained to review pull requests.
Your purpose is to act as a highly experienced software engineer and provide a
thorough review of the code hunks and suggest code snippets to improve key areas
such as logic, security, performance, data races, consistency, error handling,
maintainability, modularity, complexity and optimization.

Do not comment on minor code style issues, missing comments or documentation.
Identify and resolve significant concerns to improve overall code quality while
deliberately disregarding minor issues."""

DEFAULT_CONFIG: dict = {
    "provider": "openai",  # "openai" or "anthropic"
    "light_model": "gpt-3.5-turbo",  # summaries
    "heavy_model": "gpt-3.5-turbo",  # reviews and replies
    "temperature": 0.0,
    "retries": 3,
    "timeout": 120,  # seconds per model request
    "api_base": "https://api.openai.com/v1",
    "language": "en-US",
    "system_message": None,  # None = built-in default
    "system_message_file": None,  # path to a file overriding system_message
    "summarize": None,
    "summarize_release_notes": None,
    "path_filters": [],  # glob rules; "!" prefix excludes (e.g. "!**/*.lock")
    "max_files": 0,  # 0 = no limit
    "review_simple_changes": False,
    "review_comment_lgtm": False,
    "disable_review": False,
    "disable_release_notes": False,
    "review_draft_prs": False,
    "openai_concurrency_limit": 6,
    "github_concurrency_limit": 6,
    "github_timeout": 30,
    "page_size": 100,
    "bot_icon": "",
    "debug": False,
}


def load_config(config_path: str = ".prwarden.yml", cli_overrides: Optional[dict] = None) -> dict:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. .prwarden.yml in the current directory
      3. CLI argument overrides
    """
    config = {**DEFAULT_CONFIG, "path_filters": list(DEFAULT_CONFIG["path_filters"])}

    path = Path(config_path)
    if path.exists():
        with open(path) as f:
            file_config = yaml.safe_load(f) or {}
        config.update(file_config)

    if cli_overrides:
        for key, value in cli_overrides.items():
            if value is not None:
                config[key] = value

    # Resolve credentials from environment variables
    config["github_token"] = os.environ.get("GITHUB_TOKEN")
    config["openai_api_key"] = os.environ.get("OPENAI_API_KEY")
    config["openai_api_org"] = os.environ.get("OPENAI_API_ORG")
    config["anthropic_api_key"] = os.environ.get("ANTHROPIC_API_KEY")

    return config


def load_system_message(config: dict) -> str:
    """
    Load the system message sent with every model request.

    ``system_message_file`` (relative to cwd) wins over an inline
    ``system_message``; with neither set the built-in default is used.
    """
    custom_path = config.get("system_message_file")
    if custom_path:
        p = Path(custom_path)
        if not p.exists():
            raise FileNotFoundError(f"System message file not found: {custom_path}")
        return p.read_text()
    return config.get("system_message") or DEFAULT_SYSTEM_MESSAGE


def _matches(path: str, pattern: str) -> bool:
    """Return True if path matches pattern.

    Supports:
    - fnmatch globs on the full path: "src/generated/*.py"
    - "**/" that also matches zero directories: "**/*.lock" matches "yarn.lock"
    - fnmatch globs on the basename: "*.min.js" matches "static/app.min.js"
    - Directory names/prefixes: "dist/", "node_modules" (matches any file within that tree)
    """
    # fnmatch's "*" already crosses "/", so "**/" only needs to also match zero directories.
    candidates = {pattern, pattern.replace("/**/", "/")}
    if pattern.startswith("**/"):
        candidates.add(pattern[3:])
    if any(fnmatch.fnmatch(path, c) for c in candidates):
        return True
    if "/" not in pattern and fnmatch.fnmatch(path.rsplit("/", 1)[-1], pattern):
        return True
    prefix = pattern.rstrip("/") + "/"
    return path.startswith(prefix) or ("/" + prefix) in path


class PathFilter:
    """Include/exclude rules for changed files.

    A rule starting with "!" excludes. With no inclusion rules every path is
    included; an exclusion match always wins.
    """

    def __init__(self, rules: Optional[list] = None):
        self.inclusions: list[str] = []
        self.exclusions: list[str] = []
        for rule in rules or []:
            rule = (rule or "").strip()
            if not rule:
                continue
            if rule.startswith("!"):
                self.exclusions.append(rule[1:].strip())
            else:
                self.inclusions.append(rule)

    def check(self, path: str) -> bool:
        included = not self.inclusions or any(_matches(path, p) for p in self.inclusions)
        excluded = any(_matches(path, p) for p in self.exclusions)
        logger.debug("check path: %s => %s", path, included and not excluded)
        return included and not excluded
