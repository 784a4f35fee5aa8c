# Services package init
"""
StoryShare Backend — Services Layer
=====================================

What:  Business logic between the routes (HTTP) and MongoDB / S3.

Service Inventory:
    - StoryService:    create / get / list stories
    - CommentService:  create / list comments of a story
    - StorageService:  server-proxied upload, presigned upload, bucket provisioning

Every service is stateless apart from configuration and is exposed as a
module-level singleton (story_service, comment_service, storage_service).
"""
