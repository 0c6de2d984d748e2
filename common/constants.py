SERVICE_NAME = "static-site"
LOG_LEVEL = "INFO"

# ACM certificates used by CloudFront and global WAF resources live here
CDN_CERTIFICATE_REGION = "us-east-1"
ACM_ARN_PATTERN = r"^arn:aws[a-zA-Z-]*:acm:(?P<region>[a-z0-9-]+):\d{12}:certificate/.+$"

# Website hosting
INDEX_DOCUMENT = "index.html"
ERROR_DOCUMENT = "404.html"
DEFAULT_NOT_FOUND_RESPONSE_PATH = "/404.html"

# Bucket policy template
BUCKET_POLICY_TEMPLATE = "policies/bucket_policy.json"
SECRET_HEADER_NAME = "User-Agent"

# CloudFront
ORIGIN_ID_PREFIX = "origin-bucket-"
ORIGIN_PROTOCOL_POLICY = "http-only"
ORIGIN_HTTP_PORT = 80
ORIGIN_HTTPS_PORT = 443
ORIGIN_SSL_PROTOCOLS = ["TLSv1"]
PRICE_CLASS = "PriceClass_200"
HTTP_VERSION = "http1.1"
VIEWER_PROTOCOL_POLICY = "redirect-to-https"
SSL_SUPPORT_METHOD = "sni-only"
MINIMUM_PROTOCOL_VERSION = "TLSv1"
ALLOWED_METHODS = ["GET", "HEAD", "DELETE", "OPTIONS", "PATCH", "POST", "PUT"]
CACHED_METHODS = ["GET", "HEAD"]
COOKIES_FORWARD = "none"
MIN_TTL = 0
DEFAULT_TTL = 300
MAX_TTL = 1200
NOT_FOUND_ERROR_CODE = 404
NOT_FOUND_RESPONSE_CODE = 200
ERROR_CACHING_MIN_TTL = 360
GEO_RESTRICTION_TYPE = "none"
CLOUDFRONT_HOSTED_ZONE_ID = "Z2FDTNDATAQYW2"

# WAF (global, classic)
WAF_IP_DESCRIPTOR_TYPE = "IPV4"
WAF_PREDICATE_TYPE = "IPMatch"
WAF_DEFAULT_ACTION = "BLOCK"
WAF_RULE_ACTION = "ALLOW"
WAF_RULE_PRIORITY = 1

# Declaration names used by the resource graph
BUCKET = "Bucket"
BUCKET_POLICY = "BucketPolicy"
IP_SET = "IpSet"
IP_RULE = "IpRule"
WEB_ACL = "WebAcl"
DISTRIBUTION = "Distribution"
