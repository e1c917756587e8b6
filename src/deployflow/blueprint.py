# blueprint.py
# Pipeline for a static front-end (website bucket) plus a serverless render
# backend: checkout -> parallel builds -> stack deployments -> CDN release.
from __future__ import annotations

from .builder import PipelineBuilder
from .config import PipelineConfig
from .model import (
    BUILD,
    CHECKOUT,
    INVALIDATE,
    OBJECT_DEPLOY,
    STACK_DEPLOY,
    Pipeline,
    SecretRef,
)
from .parameters import CodeLocation

STACK_CAPABILITIES = "CAPABILITY_NAMED_IAM,CAPABILITY_AUTO_EXPAND"


def _project(b: PipelineBuilder, logical_id: str, name: str, buildspec: str, role_arn: str | None = None):
    """Build project running an external buildspec file from the sources."""
    props = {
        "Name": name,
        "Source": {"Type": "CODEPIPELINE", "BuildSpec": buildspec},
        "Artifacts": {"Type": "CODEPIPELINE"},
    }
    if role_arn:
        props["ServiceRole"] = role_arn
    return b.resource(logical_id, "AWS::CodeBuild::Project", props)


def static_site_pipeline(config: PipelineConfig) -> Pipeline:
    ns = config.namespace
    prefix = config.stack_prefix

    b = PipelineBuilder(
        config.name,
        account=config.account,
        region=config.region,
        namespace=ns,
        restart_execution_on_update=config.restart_execution_on_update,
    )

    # Bucket hosting the static website
    files = b.resource(
        "Files",
        "AWS::S3::Bucket",
        {"WebsiteConfiguration": {"IndexDocument": config.index_document}},
    )
    b.resource(
        "FilesPolicy",
        "AWS::S3::BucketPolicy",
        {
            "Bucket": files.ref(),
            "PolicyDocument": {
                "Version": "2012-10-17",
                "Statement": [
                    {
                        "Effect": "Allow",
                        "Principal": {"AWS": "*"},
                        "Action": "s3:GetObject",
                        "Resource": {"Fn::Join": ["", [files.attr("Arn"), "/*"]]},
                    }
                ],
            },
        },
    )

    # Identifiers other stacks discover through the config namespace
    b.publish(f"{ns}/S3/Assets/Name", files.ref(), "S3 Bucket Name for Assets")
    b.publish(f"{ns}/S3/Assets/DomainName", files.attr("DomainName"), "S3 Bucket DomainName for Assets")

    # Artifacts
    sources = b.artifact("sources")
    assets = b.artifact("assets")
    render = b.artifact("render")
    cdk = b.artifact("cdk")

    # Release role: read the namespace, invalidate this account's distributions
    release_role = (
        b.role("ReleaseCDNRole", "codebuild")
        .grant(["ssm:GetParameter"], [b.config_store.read_resource(config.account, config.region)])
        .grant(["cloudfront:CreateInvalidation"], [f"arn:aws:cloudfront::{config.account}:distribution/*"])
    )

    _project(b, "BuildCDK", "CDK", config.buildspecs.cdk)
    _project(b, "BuildAssets", "Assets", config.buildspecs.assets)
    _project(b, "BuildRender", "Render", config.buildspecs.render)
    _project(b, "ReleaseCDN", "CDN", config.buildspecs.release, release_role.build().arn)

    b.stage("Sources", 0).stage("Build", 1).stage("Deploy", 2).stage("Release", 3)

    # Clone sources on every push (webhook, no polling)
    token = SecretRef(config.github.token_secret)
    b.action(
        "Sources",
        "Checkout",
        CHECKOUT,
        outputs=[sources],
        config={
            "Owner": config.github.owner,
            "Repo": config.github.repository,
            "Branch": config.github.branch,
            "OAuthToken": token,
            "PollForSourceChanges": False,
        },
    )
    b.resource(
        "PipelineWebhook",
        "AWS::CodePipeline::Webhook",
        {
            "Authentication": "GITHUB_HMAC",
            "AuthenticationConfiguration": {"SecretToken": token},
            "Filters": [{"JsonPath": "$.ref", "MatchEquals": "refs/heads/{Branch}"}],
            "TargetPipeline": config.name,
            "TargetAction": "Checkout",
            "RegisterWithThirdParty": True,
        },
    )

    # Templates and assets build in parallel; render needs the built assets
    b.action("Build", "CDK", BUILD, inputs=[sources], outputs=[cdk], run_order=10,
             config={"ProjectName": "CDK"})
    b.action("Build", "Assets", BUILD, inputs=[sources], outputs=[assets], run_order=10,
             config={"ProjectName": "Assets"})
    b.action("Build", "Render", BUILD, inputs=[sources], extra_inputs=[assets], outputs=[render],
             run_order=20, config={"ProjectName": "Render", "PrimarySource": sources.name})

    # Sync assets, then the render stack (code bound to the render artifact), then the domain
    b.action("Deploy", "Assets", OBJECT_DEPLOY, inputs=[assets], run_order=10,
             config={"BucketName": files.ref(), "Extract": True})

    code = CodeLocation(
        config.code.bucket_name,
        config.code.object_key,
        config.code.object_version,
    )
    b.action(
        "Deploy",
        "Render",
        STACK_DEPLOY,
        inputs=[cdk],
        extra_inputs=[render],
        run_order=20,
        placeholders=code.placeholders,
        config={
            "ActionMode": "CREATE_UPDATE",
            "StackName": f"{prefix}-render",
            "TemplatePath": cdk.at_path(f"{prefix}-render.template.json"),
            "Capabilities": STACK_CAPABILITIES,
            "AdminPermissions": True,
        },
    )
    b.assign_code(code, "Deploy/Render", render)

    b.action(
        "Deploy",
        "Domain",
        STACK_DEPLOY,
        inputs=[cdk],
        run_order=50,
        config={
            "ActionMode": "CREATE_UPDATE",
            "StackName": f"{prefix}-domain",
            "TemplatePath": cdk.at_path(f"{prefix}-domain.template.json"),
            "Capabilities": STACK_CAPABILITIES,
            "AdminPermissions": True,
        },
    )

    # Invalidate the CDN with the dedicated release role
    b.action("Release", "CDN", INVALIDATE, inputs=[sources], role=release_role.name,
             config={"ProjectName": "CDN"})

    return b.build()
