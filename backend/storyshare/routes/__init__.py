# Routes package init
"""
StoryShare Backend — API Routes Package
=========================================

Route Inventory:
    - stories.py:  GET  /api/stories                     (list, newest first)
                   POST /api/stories                     (publish)
                   GET  /api/stories/{id}                (story + comments)
                   GET  /api/stories/{id}/comments       (comments, newest first)
                   POST /api/stories/{id}/comments       (add comment)
    - upload.py:   POST /api/upload                      (server-proxied image upload)
                   POST /api/upload/presigned            (signed URL for direct upload)
    - health.py:   GET  /health                          (dependency status)

Routes stay thin: parse the request, call a service, wrap the result in the
envelope. Failures are raised and formatted by the handlers in main.py.
"""
