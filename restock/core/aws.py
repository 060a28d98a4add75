from __future__ import annotations

from functools import lru_cache

import boto3

from .settings import S


@lru_cache(maxsize=1)
def _session():
    return boto3.session.Session(region_name=S.aws_region or "us-east-1")


@lru_cache(maxsize=1)
def ddb():
    return _session().resource("dynamodb")


@lru_cache(maxsize=1)
def ddb_client():
    return _session().client("dynamodb")


@lru_cache(maxsize=1)
def streams_client():
    return _session().client("dynamodbstreams")


@lru_cache(maxsize=1)
def sqs_client():
    return _session().client("sqs")
