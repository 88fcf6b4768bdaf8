"""
Report failing tests from a CI run to the bug tracker.

Reads a test-runner log (file or stdin), base64-encodes it and POSTs it to
the tracker's /ci-report endpoint. Every failing test found in the log is
filed as a bug on the project.

Usage:
    # Pipe test output straight in
    npm test 2>&1 | uv run report-ci-failures

    # Or point at a saved log
    uv run report-ci-failures test-output.log --commit "$GITHUB_SHA"

Connection settings default to the environment:
    BUG_TRACKER_URL, BUG_TRACKER_API_KEY, BUG_TRACKER_PROJECT_ID

Commit, branch and repository default to the GitHub Actions variables
GITHUB_SHA, GITHUB_REF_NAME and GITHUB_REPOSITORY.
"""

import base64
import json
import sys

import click
import httpx

DEFAULT_URL = "http://localhost:8000"


def build_payload(
    test_output: str,
    project_id: str,
    commit: str | None = None,
    branch: str | None = None,
    repository: str | None = None,
) -> dict:
    """Build the JSON body expected by /ci-report."""
    payload = {
        "projectId": project_id,
        "testOutput": base64.b64encode(test_output.encode("utf-8")).decode("ascii"),
    }
    for key, value in (("commit", commit), ("branch", branch), ("repository", repository)):
        if value:
            payload[key] = value
    return payload


def send_report(
    url: str,
    api_key: str,
    payload: dict,
    timeout: float = 30.0,
    client: httpx.Client | None = None,
) -> httpx.Response:
    """POST the payload to <url>/ci-report with the project's API key."""
    endpoint = f"{url.rstrip('/')}/ci-report"
    headers = {"Authorization": f"Bearer {api_key}"}
    if client is not None:
        return client.post(endpoint, json=payload, headers=headers, timeout=timeout)
    with httpx.Client() as own_client:
        return own_client.post(endpoint, json=payload, headers=headers, timeout=timeout)


def format_result(body: dict) -> str:
    """Human readable summary of a /ci-report response."""
    if "message" in body:
        return body["message"]

    lines = [f"Created {body.get('created', 0)} bug(s)"]
    for bug in body.get("bugs", []):
        lines.append(f"  - {bug['title']} ({bug['id']})")
    for failure in body.get("failed", []):
        lines.append(f"  ! could not file '{failure['testName']}': {failure['error']}")
    return "\n".join(lines)


@click.command()
@click.argument("log_file", type=click.File("r", encoding="utf-8", errors="replace"), default="-")
@click.option("--url", envvar="BUG_TRACKER_URL", default=DEFAULT_URL, show_default=True, help="Bug tracker base URL")
@click.option("--api-key", envvar="BUG_TRACKER_API_KEY", required=True, help="Project API key")
@click.option("--project-id", envvar="BUG_TRACKER_PROJECT_ID", required=True, help="Target project ID")
@click.option("--commit", envvar="GITHUB_SHA", default=None, help="Commit the tests ran against")
@click.option("--branch", envvar="GITHUB_REF_NAME", default=None, help="Branch name")
@click.option("--repository", envvar="GITHUB_REPOSITORY", default=None, help="owner/name of the repository")
@click.option("--timeout", default=30.0, show_default=True, help="Request timeout in seconds")
@click.option("--json", "use_json", is_flag=True, help="Print the raw JSON response")
def main(log_file, url, api_key, project_id, commit, branch, repository, timeout, use_json):
    """Send a CI test log to the bug tracker."""
    test_output = log_file.read()
    payload = build_payload(test_output, project_id, commit=commit, branch=branch, repository=repository)

    try:
        response = send_report(url, api_key, payload, timeout=timeout)
    except httpx.HTTPError as e:
        click.echo(f"Could not reach {url}: {e}", err=True)
        sys.exit(2)

    try:
        body = response.json()
    except ValueError:
        body = {"error": response.text}

    if response.is_success:
        click.echo(json.dumps(body, indent=2) if use_json else format_result(body))
        sys.exit(0)

    click.echo(f"CI report rejected ({response.status_code}): {body.get('error', body)}", err=True)
    sys.exit(1)


if __name__ == "__main__":
    main()
