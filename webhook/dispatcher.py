"""Requests a fresh sync run without waiting for it to finish."""
import json
import logging
import os
from typing import Mapping, Optional

import boto3
import requests
from botocore.exceptions import BotoCoreError, ClientError

from processor.exceptions import DispatchError

logger = logging.getLogger(__name__)


class LambdaDispatcher:
    """Invokes the sync Lambda asynchronously (InvocationType=Event)."""

    def __init__(self, function_name: str, client=None):
        self.function_name = function_name
        self.client = client

    def dispatch(self) -> None:
        logger.info(f"Invoking {self.function_name} asynchronously")
        try:
            client = self.client or boto3.client('lambda')
            response = client.invoke(
                FunctionName=self.function_name,
                InvocationType='Event',
                Payload=json.dumps({'source': 'fareharbor-webhook'}).encode('utf-8')
            )
        except (BotoCoreError, ClientError) as e:
            raise DispatchError(f"Lambda invoke failed: {e}") from e
        status = response.get('StatusCode')
        if status != 202:
            raise DispatchError(f"Lambda invoke returned status {status}")


class GitHubWorkflowDispatcher:
    """Triggers a workflow_dispatch run of the sync workflow."""

    API_URL = "https://api.github.com"

    def __init__(self, token: str, owner: str, repo: str, workflow_file: str,
                 ref: str = 'main', timeout: int = 10):
        self.token = token
        self.owner = owner
        self.repo = repo
        self.workflow_file = workflow_file
        self.ref = ref
        self.timeout = timeout

    @property
    def endpoint(self) -> str:
        return (
            f"{self.API_URL}/repos/{self.owner}/{self.repo}"
            f"/actions/workflows/{self.workflow_file}/dispatches"
        )

    def dispatch(self) -> None:
        logger.info(f"Dispatching {self.workflow_file} on {self.owner}/{self.repo}@{self.ref}")
        try:
            response = requests.post(
                self.endpoint,
                headers={
                    'Authorization': f"Bearer {self.token}",
                    'Accept': 'application/vnd.github+json',
                    'User-Agent': 'fareharbor-webhook',
                },
                json={'ref': self.ref},
                timeout=self.timeout
            )
        except requests.RequestException as e:
            raise DispatchError(f"GitHub dispatch failed: {e}") from e

        if not response.ok:
            raise DispatchError(f"GitHub dispatch failed: HTTP {response.status_code} {response.text}")


def dispatcher_from_env(environ: Optional[Mapping[str, str]] = None):
    """
    Build the dispatcher the environment asks for.

    SYNC_FUNCTION_NAME selects the Lambda dispatcher; otherwise the
    GITHUB_* variables select a workflow dispatch.

    Raises:
        DispatchError: If neither target is fully configured
    """
    env = os.environ if environ is None else environ

    if env.get('SYNC_FUNCTION_NAME'):
        return LambdaDispatcher(env['SYNC_FUNCTION_NAME'])

    if not env.get('GITHUB_TOKEN'):
        raise DispatchError("Missing SYNC_FUNCTION_NAME or GITHUB_TOKEN")
    if not env.get('GITHUB_OWNER') or not env.get('GITHUB_REPO'):
        raise DispatchError("Missing GITHUB_OWNER/GITHUB_REPO")
    if not env.get('GITHUB_WORKFLOW_FILE'):
        raise DispatchError("Missing GITHUB_WORKFLOW_FILE")

    return GitHubWorkflowDispatcher(
        token=env['GITHUB_TOKEN'],
        owner=env['GITHUB_OWNER'],
        repo=env['GITHUB_REPO'],
        workflow_file=env['GITHUB_WORKFLOW_FILE'],
        ref=env.get('GITHUB_REF') or 'main'
    )
