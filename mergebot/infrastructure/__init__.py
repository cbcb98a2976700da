"""Infrastructure Layer: Contains concrete implementations and adapters.

Connects the application to the outside world (GitLab REST API, console,
configuration files) by implementing the interfaces defined in the domain
layer. Also hosts the request resilience layer and the job queue.
"""
