#!/usr/bin/env python3
"""AWS CDK entrypoint for provisioning the SkillShift infrastructure.

Stacks are not instantiated in hand-written order: the topology declares what
each stack requires and produces, the planner derives the deployment order and
binds cross-stack references, and only then is each stack constructed. Select
a subset of stacks with ``-c stacks=Parameters,Service``; imports that no
selected stack publishes are read from the account's CloudFormation exports.
"""
import json
import os
import sys

import aws_cdk as cdk
from aws_lambda_powertools import Logger

from common.config import EXPORT_TABLE_CLOUDFORMATION, EXPORT_TABLE_MEMORY, TopologyConfig
from provisioning.errors import TopologyError
from provisioning.exports import (
    CloudFormationExportTable,
    ExportTable,
    InMemoryExportTable,
    JsonFileExportTable,
)
from provisioning.planner import ProvisioningPlanner
from skillshift.topology import SkillShiftTopology

logger = Logger(service="skillshift-provisioning", level=os.getenv("LOG_LEVEL", "INFO").upper())


def build_export_table(config: TopologyConfig) -> ExportTable:
    if config.export_table == EXPORT_TABLE_CLOUDFORMATION:
        return CloudFormationExportTable(region=config.region)
    if config.export_table == EXPORT_TABLE_MEMORY:
        return InMemoryExportTable()
    return JsonFileExportTable(config.export_table)


def main() -> int:
    app = cdk.App()
    config = TopologyConfig.from_app(app)
    topology = SkillShiftTopology(app, config)

    try:
        planner = ProvisioningPlanner(export_table=build_export_table(config))
        plan = planner.plan(topology.descriptors())
    except TopologyError:
        logger.exception("Unable to build a deployment plan")
        return 1
    logger.info("Deployment plan", plan=json.dumps(plan.to_dict()))

    report = planner.execute(plan)
    if not report.succeeded:
        logger.error(
            "Provisioning halted",
            failed_stack=report.failed_stack,
            completed=list(report.completed),
            pending=list(report.pending),
            error=str(report.error),
        )
        return 1

    app.synth()
    return 0


if __name__ == "__main__":
    sys.exit(main())
