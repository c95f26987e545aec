from __future__ import annotations

from typing import Any, Dict, List

EXECUTORS_KEY = "testdash_executors"
DEFINITIONS_KEY = "testdash_definitions"
RUNS_KEY = "testdash_runs"
SUITES_KEY = "testdash_test_suites"

EXECUTORS_ENDPOINT = "test-executors"
DEFINITIONS_ENDPOINT = "test-definitions"
RUNS_ENDPOINT = "test-runs"
SUITES_ENDPOINT = "test-suites"

TERMINAL_RUN_STATUSES = ("completed", "failed")

SAMPLE_EXECUTORS: List[Dict[str, Any]] = [
    {
        "id": "k6",
        "name": "K6 Load Tester",
        "image": "grafana/k6:latest",
        "description": "Load testing with Grafana k6.",
        "command": ["k6", "run"],
        "supportedFileTypes": ["js"],
        "env": {},
        "createdAt": "2024-01-01T00:00:00.000Z",
    },
    {
        "id": "pytest",
        "name": "Pytest Runner",
        "image": "python:3.12-slim",
        "description": "Runs pytest suites inside a Python container.",
        "command": ["pytest", "-q"],
        "supportedFileTypes": ["py"],
        "env": {"PYTHONUNBUFFERED": "1"},
        "createdAt": "2024-01-01T00:00:00.000Z",
    },
]

SAMPLE_DEFINITIONS: List[Dict[str, Any]] = [
    {
        "id": "api-tests",
        "name": "API Tests",
        "description": "Smoke tests against the public API.",
        "image": "python:3.12-slim",
        "commands": ["pytest", "tests/api"],
        "createdAt": "2024-01-02T00:00:00.000Z",
        "executorId": "pytest",
        "variables": {"API_URL": "http://localhost:8080"},
        "labels": ["api", "smoke"],
    },
    {
        "id": "load-tests",
        "name": "Load Tests",
        "description": "Baseline load profile.",
        "image": "grafana/k6:latest",
        "commands": ["k6", "run", "script.js"],
        "createdAt": "2024-01-03T00:00:00.000Z",
        "executorId": "k6",
        "labels": ["performance"],
    },
]

SAMPLE_RUNS: List[Dict[str, Any]] = [
    {
        "id": "test-1704240000000",
        "name": "API Tests Run",
        "image": "python:3.12-slim",
        "command": ["pytest", "tests/api"],
        "status": "completed",
        "createdAt": "2024-01-03T00:00:00.000Z",
        "definitionId": "api-tests",
        "executorId": "pytest",
        "duration": 42,
        "logs": ["> Starting test...", "> All assertions passed"],
    },
]

SAMPLE_SUITES: List[Dict[str, Any]] = [
    {
        "id": "nightly",
        "name": "Nightly",
        "description": "Everything, every night.",
        "testDefinitionIds": ["api-tests", "load-tests"],
        "createdAt": "2024-01-04T00:00:00.000Z",
        "executionMode": "sequential",
        "labels": ["nightly"],
    },
]
