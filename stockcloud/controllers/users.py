"""
Auth and Users Controller - login sessions and account administration
"""

from flask import g, request
from flask_restx import Resource, fields
from stockcloud.middleware.auth import login_user, logout_user, require_admin, require_auth
from stockcloud.models import UserRole
from stockcloud.services import UserService
from stockcloud.utils.schemas import (
    LoginSchema, PasswordResetRequestSchema, PasswordResetSchema, UserRequestSchema, UserUpdateSchema
)
import logging

logger = logging.getLogger(__name__)

login_schema = LoginSchema()
user_schema = UserRequestSchema()
user_update_schema = UserUpdateSchema()
reset_request_schema = PasswordResetRequestSchema()
reset_schema = PasswordResetSchema()

RESET_REQUESTED = 'If the e-mail is registered, a reset token has been issued'


def get_user_models(api):
    """Define API models for auth and user operations"""
    login_model = api.model('Login', {
        'username': fields.String(required=True),
        'password': fields.String(required=True),
    })

    user_model = api.model('User', {
        'username': fields.String(required=True, description='Unique username'),
        'email': fields.String(required=True, description='Unique e-mail'),
        'password': fields.String(required=True, description='At least 8 characters'),
        'role': fields.String(enum=['admin', 'employee']),
    })

    user_update_model = api.model('UserUpdate', {
        'role': fields.String(enum=['admin', 'employee']),
        'active': fields.Boolean(),
    })

    return login_model, user_model, user_update_model


def register_user_routes(api, auth_ns, users_ns):
    """Register auth and user routes"""
    login_model, user_model, user_update_model = get_user_models(api)

    @auth_ns.route('/login')
    class Login(Resource):
        @api.expect(login_model)
        def post(self):
            """Open a session"""
            data = login_schema.load(request.get_json(silent=True) or {})
            user = UserService().authenticate(data['username'], data['password'])
            login_user(user)
            return user, 200

    @auth_ns.route('/logout')
    class Logout(Resource):
        def post(self):
            """Close the session"""
            logout_user()
            return {'message': 'Logged out'}, 200

    @auth_ns.route('/password-reset')
    class PasswordResetRequest(Resource):
        def post(self):
            """Issue a reset token; the answer does not reveal whether the e-mail exists"""
            data = reset_request_schema.load(request.get_json(silent=True) or {})
            UserService().request_password_reset(data['email'])
            return {'message': RESET_REQUESTED}, 202

    @auth_ns.route('/password-reset/<string:token>')
    class PasswordReset(Resource):
        def get(self, token):
            """Check a reset token before asking for the new password"""
            user = UserService().verify_reset_token(token)
            return {'valid': True, 'username': user['username']}, 200

        def post(self, token):
            data = reset_schema.load(request.get_json(silent=True) or {})
            UserService().reset_password(token, data['password'])
            return {'message': 'Password updated'}, 200

    @auth_ns.route('/me')
    class CurrentUser(Resource):
        @require_auth
        def get(self):
            return g.current_user, 200

    @users_ns.route('/')
    class UserList(Resource):
        @api.doc('list_users')
        @require_admin
        def get(self):
            return UserService().list_users(), 200

        @api.doc('create_user')
        @api.expect(user_model)
        @require_admin
        def post(self):
            data = user_schema.load(request.get_json(silent=True) or {})
            return UserService().create_user(**data), 201

    @users_ns.route('/<int:user_id>')
    class UserDetail(Resource):
        @require_admin
        def get(self, user_id):
            return UserService().get_user(user_id), 200

        @api.expect(user_update_model)
        @require_admin
        def patch(self, user_id):
            """Change role and/or active flag"""
            data = user_update_schema.load(request.get_json(silent=True) or {})
            service = UserService()
            user = None
            if 'role' in data:
                user = service.change_role(user_id, UserRole(data['role']))
            if 'active' in data:
                user = service.set_active(user_id, data['active'])
            return user, 200

    @users_ns.route('/<int:user_id>/reset-token')
    class UserResetToken(Resource):
        @require_admin
        def post(self, user_id):
            """Issue a password reset token for a user"""
            return UserService().issue_reset_token(user_id), 201
