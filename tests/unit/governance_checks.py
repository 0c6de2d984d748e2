from stack_test_helpers import (
    distribution_config,
    find_resources_by_type,
    get_single_resource_id,
)
from governance_test_helpers import AWSService, resource_governance_doc_url


def assert_s3_compliance(template):
    governance_doc = resource_governance_doc_url(AWSService.S3.value)
    resources = find_resources_by_type(template, "AWS::S3::Bucket")
    logical_id = get_single_resource_id(resources)
    props = resources[logical_id]["Properties"]
    pab = props["PublicAccessBlockConfiguration"]
    assert pab["BlockPublicAcls"] is True and pab["IgnorePublicAcls"] is True, (
        "S3 website buckets must block public ACLs; public reads go through the "
        f"bucket policy only. see {governance_doc}"
    )


def assert_cloudfront_compliance(template):
    governance_doc = resource_governance_doc_url(AWSService.CloudFront.value)
    config = distribution_config(template)
    assert (
        config["DefaultCacheBehavior"]["ViewerProtocolPolicy"] == "redirect-to-https"
    ), f"CloudFront must redirect HTTP viewers to HTTPS. see {governance_doc}"
    assert config["ViewerCertificate"]["SslSupportMethod"] == "sni-only", (
        f"CloudFront must terminate TLS with an ACM certificate over SNI. see {governance_doc}"
    )
