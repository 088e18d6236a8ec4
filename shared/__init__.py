"""
Shared module for common utilities used by the REST API and the CLI.

STRUCTURE:
- shared.security: Authentication
  - auth.py: JWT signing/verification, current_user_context

- shared.infrastructure: Database and request context
  - db.py: SQLAlchemy sessions, safe_commit(), transaction()
  - correlation.py: X-Request-ID middleware and logging filter

- shared.config: Configuration
  - settings.py: Environment config (Pydantic)
  - logging.py: Structured logging and security audit events
  - constants.py: Roles, DocumentState, enums

- shared.utils: Utilities
  - exceptions.py: HTTP exceptions with auto-logging and error kinds
  - validators.py: LIKE escaping, search and code normalization
  - schemas.py: Shared Pydantic schemas

IMPORT EXAMPLES:
    from shared.security.auth import verify_jwt, current_user_context
    from shared.infrastructure.db import get_db, transaction
    from shared.config.settings import settings
    from shared.config.constants import Roles, DocumentState
    from shared.utils.exceptions import NotFoundError, ForbiddenError
"""
