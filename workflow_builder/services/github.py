"""Repository metadata lookup through the GitHub REST API."""

from typing import Any, Dict

from .base import ServiceAdapter, utc_timestamp

GITHUB_API_BASE = "https://api.github.com"
DEFAULT_USERNAME = "octocat"

SIMULATED_REPOSITORIES = [
    {"name": "awesome-project", "stars": 42, "forks": 15, "language": "JavaScript"},
    {"name": "utility-tools", "stars": 28, "forks": 8, "language": "Python"},
]


class GitHubAdapter(ServiceAdapter):
    """Lists the public repositories of a user."""

    name = "github"

    @property
    def configured(self) -> bool:
        return bool(self.settings.github_token)

    def execute(self, config: Dict[str, Any], previous_results: Dict[str, Any]) -> Dict[str, Any]:
        username = config.get("username") or DEFAULT_USERNAME
        response = self.http.get(
            f"{GITHUB_API_BASE}/users/{username}/repos",
            headers={
                "Authorization": f"token {self.settings.github_token}",
                "User-Agent": "Workflow-Builder"
            },
            timeout=self.settings.service_timeout
        )
        repos = self.check_response(response).json()

        return {
            "real_service": True,
            "user": username,
            "repositories": [
                {
                    "name": repo["name"],
                    "stars": repo.get("stargazers_count", 0),
                    "forks": repo.get("forks_count", 0),
                    "language": repo.get("language"),
                    "last_updated": repo.get("updated_at"),
                    "url": repo.get("html_url")
                }
                for repo in repos
            ],
            "timestamp": utc_timestamp()
        }

    def simulate(self, config: Dict[str, Any], previous_results: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "real_service": False,
            "user": config.get("username") or DEFAULT_USERNAME,
            "repositories": [dict(repo) for repo in SIMULATED_REPOSITORIES],
            "timestamp": utc_timestamp(),
            "status_message": "GitHub token not configured - using simulated data"
        }
