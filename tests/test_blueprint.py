"""Tests for the static site pipeline and its rendered definition."""

from __future__ import annotations

import json

from deployflow.blueprint import static_site_pipeline
from deployflow.model import CHECKOUT, INVALIDATE, OBJECT_DEPLOY, STACK_DEPLOY
from deployflow.render import dumps, render_definition

ACCOUNT = "123456789012"


class TestTopology:
    def test_stages(self, pipeline):
        assert [(s.name, s.index) for s in pipeline.stages] == [
            ("Sources", 0),
            ("Build", 1),
            ("Deploy", 2),
            ("Release", 3),
        ]

    def test_artifact_flow(self, pipeline):
        flow = {a.name: (a.producer, a.consumers) for a in pipeline.artifacts}
        assert flow["sources"] == (
            "Sources/Checkout",
            ("Build/Assets", "Build/CDK", "Build/Render", "Release/CDN"),
        )
        assert flow["assets"] == ("Build/Assets", ("Build/Render", "Deploy/Assets"))
        assert flow["render"] == ("Build/Render", ("Deploy/Render",))
        assert flow["cdk"] == ("Build/CDK", ("Deploy/Render", "Deploy/Domain"))

    def test_action_kinds(self, pipeline):
        assert pipeline.action("Sources/Checkout").kind == CHECKOUT
        assert pipeline.action("Deploy/Assets").kind == OBJECT_DEPLOY
        assert pipeline.action("Deploy/Render").kind == STACK_DEPLOY
        assert pipeline.action("Deploy/Domain").kind == STACK_DEPLOY
        assert pipeline.action("Release/CDN").kind == INVALIDATE
        assert pipeline.action("Release/CDN").role == "ReleaseCDNRole"

    def test_render_stack_parameters(self, pipeline):
        assert dict(pipeline.parameters["Deploy/Render"]) == {
            "RenderCodeBucketName": {"Fn::GetArtifactAtt": ("render", "BucketName")},
            "RenderCodeObjectKey": {"Fn::GetArtifactAtt": ("render", "ObjectKey")},
        }
        assert dict(pipeline.parameters["Deploy/Domain"]) == {}

    def test_no_restart_on_update(self, pipeline):
        assert pipeline.restart_execution_on_update is False

    def test_custom_code_parameters(self, config):
        config = config.model_copy(
            update={"code": config.code.model_copy(update={"object_version": "RenderCodeVersion"})}
        )
        pipeline = static_site_pipeline(config)
        assert set(pipeline.parameters["Deploy/Render"]) == {
            "RenderCodeBucketName",
            "RenderCodeObjectKey",
            "RenderCodeVersion",
        }


class TestDefinition:
    def test_pipeline_section(self, pipeline):
        doc = render_definition(pipeline)["pipeline"]
        assert doc["name"] == "cra-serverless"
        assert doc["restartExecutionOnUpdate"] is False
        assert [s["name"] for s in doc["stages"]] == ["Sources", "Build", "Deploy", "Release"]

    def test_checkout_uses_secret_reference_and_webhook(self, pipeline):
        doc = render_definition(pipeline)
        checkout = doc["pipeline"]["stages"][0]["actions"][0]
        assert checkout["configuration"]["OAuthToken"] == "{{resolve:secretsmanager:GitHubToken:SecretString:::}}"
        assert checkout["configuration"]["PollForSourceChanges"] == "false"
        assert checkout["outputArtifacts"] == [{"name": "sources"}]
        webhook = doc["resources"]["PipelineWebhook"]["Properties"]
        assert webhook["TargetAction"] == "Checkout"

    def test_render_deploy_action(self, pipeline):
        deploy = render_definition(pipeline)["pipeline"]["stages"][2]
        render = next(a for a in deploy["actions"] if a["name"] == "Render")
        assert render["runOrder"] == 20
        assert render["inputArtifacts"] == [{"name": "cdk"}, {"name": "render"}]
        assert render["configuration"]["TemplatePath"] == "cdk::cra-serverless-render.template.json"
        assert json.loads(render["configuration"]["ParameterOverrides"]) == {
            "RenderCodeBucketName": {"Fn::GetArtifactAtt": ["render", "BucketName"]},
            "RenderCodeObjectKey": {"Fn::GetArtifactAtt": ["render", "ObjectKey"]},
        }
        domain = next(a for a in deploy["actions"] if a["name"] == "Domain")
        assert "ParameterOverrides" not in domain["configuration"]

    def test_release_role(self, pipeline):
        doc = render_definition(pipeline)
        cdn = doc["pipeline"]["stages"][3]["actions"][0]
        assert cdn["roleArn"] == f"arn:aws:iam::{ACCOUNT}:role/ReleaseCDNRole"

        role = doc["resources"]["ReleaseCDNRole"]["Properties"]
        statements = role["Policies"][0]["PolicyDocument"]["Statement"]
        assert [s["Action"] for s in statements] == [["ssm:GetParameter"], ["cloudfront:CreateInvalidation"]]
        assert doc["resources"]["ReleaseCDN"]["Properties"]["ServiceRole"] == cdn["roleArn"]

    def test_bucket_and_parameters(self, pipeline):
        doc = render_definition(pipeline)
        assert doc["resources"]["Files"]["Properties"] == {
            "WebsiteConfiguration": {"IndexDocument": "index.html"}
        }
        values = {p["Name"]: p["Value"] for p in doc["parameters"]}
        assert values == {
            "/cra-serverless/S3/Assets/DomainName": {"Fn::GetAtt": ["Files", "DomainName"]},
            "/cra-serverless/S3/Assets/Name": {"Ref": "Files"},
        }

    def test_buildspecs_are_referenced(self, pipeline):
        resources = render_definition(pipeline)["resources"]
        assert resources["BuildRender"]["Properties"]["Source"]["BuildSpec"] == "./infra/buildspecs/render.yml"

    def test_json_is_stable(self, config):
        assert dumps(static_site_pipeline(config)) == dumps(static_site_pipeline(config))
