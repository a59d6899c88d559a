"""
Session Authentication Middleware
Signed-cookie sessions holding the logged-in user id
"""

from functools import wraps
from flask import current_app, g, session

from stockcloud.database import db
from stockcloud.models import User

SESSION_USER_KEY = 'user_id'


def login_user(user):
    """Start a session for an authenticated user"""
    session.clear()
    session[SESSION_USER_KEY] = user['id']
    session.permanent = True


def logout_user():
    session.clear()


def load_session_user():
    """Active user of the current session, or None"""
    user_id = session.get(SESSION_USER_KEY)
    if user_id is None:
        return None

    user = db.session.get(User, user_id)
    if not user or not user.active:
        session.clear()
        return None
    return user


def _set_context(user):
    if user is None:
        # Bypass mode, no real user behind the request
        g.current_user = {'id': None, 'username': 'testuser', 'role': 'admin'}
        g.user_id = None
        g.user_role = 'admin'
    else:
        g.current_user = user.to_dict()
        g.user_id = user.id
        g.user_role = user.role.value


def require_auth(f):
    """
    Decorator to require authentication
    Sets g.current_user, g.user_id, g.user_role for authenticated requests
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        user = load_session_user()

        if user is None:
            # Skip authentication in testing environment
            if current_app.config.get('AUTH_BYPASS'):
                _set_context(None)
                return f(*args, **kwargs)

            return {
                'error': 'Authentication required',
                'message': 'Please log in first',
                'status_code': 401
            }, 401

        _set_context(user)
        return f(*args, **kwargs)

    return decorated_function


def require_admin(f):
    """
    Decorator to require admin role
    Must be used after require_auth or will call it internally
    """
    @wraps(f)
    @require_auth
    def decorated_function(*args, **kwargs):
        if g.user_role != 'admin':
            current_app.logger.warning(f"User {g.user_id} attempted an admin-only action")
            return {
                'error': 'Forbidden',
                'message': 'Admin access required',
                'status_code': 403
            }, 403

        return f(*args, **kwargs)

    return decorated_function
