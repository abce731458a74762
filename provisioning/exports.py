"""Export tables: the flat name -> value namespace shared between separate runs."""
import json
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Iterator, Optional, Union

import boto3
from aws_lambda_powertools import Logger
from botocore.exceptions import BotoCoreError, ClientError

from provisioning.errors import ExportTableError, ProviderError
from provisioning.resources import ExportRecord

logger = Logger(service="skillshift-provisioning", level=os.getenv("LOG_LEVEL", "INFO").upper())


class ExportTable(ABC):
    @abstractmethod
    def get(self, name: str) -> Optional[ExportRecord]:
        """Return the record published under ``name``, if any."""

    @abstractmethod
    def publish(self, record: ExportRecord) -> None:
        """Make ``record`` visible to later runs."""


class InMemoryExportTable(ExportTable):
    def __init__(self, records: Optional[list[ExportRecord]] = None) -> None:
        self._records: dict[str, ExportRecord] = {record.name: record for record in records or []}

    def __iter__(self) -> Iterator[ExportRecord]:
        return iter(self._records.values())

    def get(self, name: str) -> Optional[ExportRecord]:
        return self._records.get(name)

    def publish(self, record: ExportRecord) -> None:
        self._records[record.name] = record


class JsonFileExportTable(InMemoryExportTable):
    """Export table persisted to a JSON document on disk.

    The file is re-read on construction and rewritten on every publish, so a
    later run sees everything earlier runs published.
    """

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)
        records = []
        if self.path.exists():
            try:
                with open(self.path) as file:
                    records = [ExportRecord.from_dict(item) for item in json.load(file).get("exports", [])]
            except (OSError, ValueError) as e:
                logger.exception("Reading export table failed", path=str(self.path))
                raise ExportTableError(str(self.path), str(e)) from e
            except (AttributeError, KeyError, TypeError) as e:
                logger.exception("Export table holds a malformed entry", path=str(self.path))
                raise ExportTableError(str(self.path), f"malformed export entry ({e!r})") from e
        super().__init__(records)

    def publish(self, record: ExportRecord) -> None:
        super().publish(record)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = {"exports": [item.to_dict() for item in sorted(self, key=lambda r: r.name)]}
        with open(self.path, "w") as file:
            json.dump(payload, file, indent=2)
        logger.debug("Persisted export", export_name=record.name, path=str(self.path))


class CloudFormationExportTable(InMemoryExportTable):
    """Live CloudFormation exports of the target account and region.

    Records published during a synth stay in memory: the synthesized template
    carries the matching ``CfnOutput`` export and CloudFormation makes it
    durable on deploy.
    """

    def __init__(self, region: Optional[str] = None, client=None) -> None:
        super().__init__()
        self._client = client or boto3.client("cloudformation", region_name=region)
        self._live: Optional[dict[str, str]] = None

    def get(self, name: str) -> Optional[ExportRecord]:
        pending = super().get(name)
        if pending is not None:
            return pending
        value = self._live_exports().get(name)
        return ExportRecord(name=name, value=value) if value is not None else None

    def _live_exports(self) -> dict[str, str]:
        if self._live is None:
            try:
                paginator = self._client.get_paginator("list_exports")
                self._live = {
                    export["Name"]: export["Value"]
                    for page in paginator.paginate()
                    for export in page.get("Exports", [])
                }
            except ClientError as e:
                error_info = e.response.get("Error", {})
                logger.exception("Listing CloudFormation exports failed", code=error_info.get("Code"))
                raise ProviderError("exports", error_info.get("Message", str(e))) from e
            except BotoCoreError as e:
                logger.exception("Listing CloudFormation exports failed")
                raise ProviderError("exports", str(e)) from e
            logger.info("Loaded CloudFormation exports", count=len(self._live))
        return self._live
