from __future__ import annotations
import os

ACCOUNT = os.environ.get("DEPLOYFLOW_ACCOUNT")
REGION = os.environ.get("DEPLOYFLOW_REGION", os.environ.get("AWS_REGION"))
NAMESPACE = os.environ.get("DEPLOYFLOW_NAMESPACE", "/cra-serverless")
API_URL = os.environ.get("DEPLOYFLOW_API_URL", "http://localhost:8000")
