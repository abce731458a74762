from stack_test_helpers import find_resources_by_type, get_single_resource_id
from governance_test_helpers import AWSService, resource_governance_doc_url


def assert_ecr_compliance(template):
    governance_doc = resource_governance_doc_url(AWSService.ECR.value)
    resources = find_resources_by_type(template, "AWS::ECR::Repository")
    logical_id = get_single_resource_id(resources)
    props = resources[logical_id]["Properties"]
    assert props["ImageScanningConfiguration"] == {"ScanOnPush": True}, (
        "ECR repositories must scan images on push according to skillshift "
        f"security standards. see {governance_doc}"
    )
    assert "LifecyclePolicy" in props, (
        f"ECR repositories must expire old images. see {governance_doc}"
    )


def assert_iam_compliance(template):
    governance_doc = resource_governance_doc_url(AWSService.IAM_Role.value)
    for policy in find_resources_by_type(template, "AWS::IAM::Policy").values():
        for statement in policy["Properties"]["PolicyDocument"]["Statement"]:
            assert statement.get("Resource") != "*", (
                "Inline IAM policies must not grant access to every resource "
                f"according to skillshift security standards. see {governance_doc}"
            )


def assert_log_group_compliance(template):
    governance_doc = resource_governance_doc_url(AWSService.Log_Group.value)
    for log_group in find_resources_by_type(template, "AWS::Logs::LogGroup").values():
        assert "RetentionInDays" in log_group["Properties"], (
            f"Log groups must set a retention period. see {governance_doc}"
        )
