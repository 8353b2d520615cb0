"""
The `api` package defines the backend's HTTP interface, along with
supporting utilities and data models.

It integrates FastAPI routing, JWT authentication, and the chat pipeline.
The package ensures clean request/response validation, access control for
the admin and user audiences, and orchestration of each chat turn.

Contents
--------
- fast_api
    Defines the FastAPI router with endpoints for:
        * Admin login/logout, user registration, login and logout
        * Chat turns (`/generate`)
        * Chat history, session listing and hiding
        * Persona listing and the caller's invite code

- admin_api
    Admin-only router: personas, invite codes, chat histories, user
    activity and metrics.

- models
    Pydantic schemas for request validation.

- utils
    JWT utilities:
        * `create_access_token`: issues signed JWTs with expiration
        * `verify_token`: validates JWTs and returns their claims
        * `require_admin` / `require_user`: FastAPI auth dependencies

- chat_pipeline
    One conversational turn: persist, replay history, tool round trips,
    persist the reply or a placeholder.

- gemini_client
    Gemini chat model client and the stubbed `google_search` tool.
"""
