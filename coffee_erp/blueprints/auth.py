import logging
from flask import Blueprint, jsonify
from flask_login import login_user, logout_user, current_user
from coffee_erp.models import User
from coffee_erp.forms import LoginForm
from coffee_erp.utils import form_errors

auth_bp = Blueprint('auth', __name__)
logger = logging.getLogger(__name__)


@auth_bp.route('/login', methods=['POST'])
def login():
    if current_user.is_authenticated:
        return jsonify({'user': current_user.to_dict()})
    form = LoginForm()
    if not form.validate_on_submit():
        return form_errors(form)

    email_in = form.email.data.strip().lower()
    user = User.query.filter_by(email=email_in).first()
    if user and user.check_password(form.password.data):
        login_user(user)
        logger.info("User %s logged in", user.email)
        return jsonify({'user': user.to_dict()})
    logger.warning("Failed login for %s", email_in)
    return jsonify({'error': 'Unauthorized', 'message': 'Invalid credentials.'}), 401


@auth_bp.route('/logout')
def logout():
    logout_user()
    return jsonify({'success': True})
