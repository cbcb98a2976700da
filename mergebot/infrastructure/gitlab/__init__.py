"""GitLab REST API adapter built on the resilience layer."""
