"""Cloud provider detection from extracted components and IaC content."""

import json
from typing import Optional

# Substrings matched against a component's name, type, service, description
# and configuration (all lowercased)
COMPONENT_PATTERNS: dict[str, tuple[str, ...]] = {
    "aws": (
        "ec2", "s3", "lambda", "rds", "cloudfront", "route53", "dynamodb", "sns", "sqs",
        "api gateway", "elb", "alb", "nlb", "cloudformation", "cloudtrail", "sagemaker",
        "kinesis", "emr", "athena", "cloudwatch", "fargate", "eks", "ecs", "ebs", "efs",
        "glacier", "elasticache", "redshift", "aurora", "secrets manager", "guardduty",
        "aws-", "aws_", "amazon-", "amazonaws.com", "arn:aws:",
    ),
    "azure": (
        "app service", "blob storage", "azure functions", "virtual network", "application gateway",
        "expressroute", "azure ad", "key vault", "sentinel", "data factory", "hdinsight",
        "cognitive services", "service bus", "event grid", "logic apps", "container instances",
        "aks", "service fabric", "cosmos db", "synapse", "azure-", "azurerm_", "microsoft-",
        "azure.com", "windows.net", "/subscriptions/",
    ),
    "gcp": (
        "compute engine", "app engine", "cloud functions", "gke", "cloud run", "cloud storage",
        "filestore", "cloud sql", "spanner", "firestore", "bigtable", "cloud load balancing",
        "cloud cdn", "cloud dns", "cloud nat", "cloud armor", "bigquery", "dataflow", "dataproc",
        "pub/sub", "cloud composer", "cloud build", "artifact registry", "gcp-", "google-",
        "google_", "googleapis.com", "gcp.com", "projects/",
    ),
    "kubernetes": (
        "kubernetes", "k8s", "pod", "configmap", "ingress", "persistentvolume", "statefulset",
        "daemonset", "cronjob", "namespace", "helm", "kubernetes.io/", "k8s.io/", "apiversion:",
        "kind:", "eks", "aks", "gke", "openshift", "rancher",
    ),
}

# Substrings matched against the whole (lowercased) file content
CONTENT_PATTERNS: dict[str, tuple[str, ...]] = {
    "aws": ("aws:", "amazon:", 'provider "aws"', 'provider "amazon"', "arn:aws:", "amazonaws.com"),
    "azure": (
        "azure:", "microsoft:", 'provider "azurerm"', 'provider "azure"', "azure.com",
        "windows.net", "/subscriptions/",
    ),
    "gcp": (
        "google:", "gcp:", 'provider "google"', 'provider "gcp"', "googleapis.com", "gcp.com",
        "projects/",
    ),
    "kubernetes": ("apiversion:", "kind:", "kubernetes.io/", "k8s.io/"),
}


def detect_component_providers(component) -> list[str]:
    """Providers whose service names appear in one extracted component."""
    if isinstance(component, str):
        text = component.lower()
    elif isinstance(component, dict):
        config = component.get("configuration") or {}
        text = " ".join(
            [
                str(component.get("name") or ""),
                str(component.get("type") or ""),
                str(component.get("cloudService") or ""),
                str(component.get("description") or ""),
                json.dumps(config, default=str),
            ]
        ).lower()
    else:
        return []
    return [provider for provider, patterns in COMPONENT_PATTERNS.items() if any(p in text for p in patterns)]


def detect_content_providers(content: str) -> list[str]:
    """Providers declared or referenced in IaC text."""
    text = content.lower()
    return [provider for provider, patterns in CONTENT_PATTERNS.items() if any(p in text for p in patterns)]


def detect_cloud_providers(components: list, content: Optional[str] = None) -> list[str]:
    """Providers found in the components and, for text files, in the content.

    Returns:
        Provider names in first-seen order, without duplicates
    """
    found: list[str] = []
    for component in components:
        for provider in detect_component_providers(component):
            if provider not in found:
                found.append(provider)
    if content:
        for provider in detect_content_providers(content):
            if provider not in found:
                found.append(provider)
    return found


def hybrid_cloud_model(providers: list[str]) -> str:
    if len(providers) > 1:
        return "multi-cloud"
    if "kubernetes" in providers:
        return "hybrid-cloud"
    return "single-cloud"
