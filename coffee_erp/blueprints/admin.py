from flask import Blueprint, jsonify
from flask_login import login_required, current_user
from coffee_erp.constants import Role
from coffee_erp.forms import DepartmentForm, UserForm
from coffee_erp.models import User
from coffee_erp.services import admin_service
from coffee_erp.services.admin_service import DepartmentService, UserService
from coffee_erp.services.modification_service import known_departments
from coffee_erp.utils import ensure_role, form_errors

admin_bp = Blueprint('admin', __name__)


@admin_bp.before_request
@login_required
def require_admin():
    ensure_role(current_user, Role.ADMIN)


@admin_bp.route('/stats')
def stats():
    return jsonify(admin_service.get_dashboard_stats())


@admin_bp.route('/users', methods=['GET'])
def list_users():
    return jsonify([u.to_dict() for u in User.query.order_by(User.username).all()])


@admin_bp.route('/users', methods=['POST'])
def save_user():
    form = UserForm()
    if not form.validate_on_submit():
        return form_errors(form)
    user = UserService.create_or_update_user({
        'id': form.id.data,
        'name': form.name.data,
        'email': form.email.data,
        'dept': form.dept.data,
        'role': form.role.data,
        'password': form.password.data,
    })
    return jsonify(user.to_dict()), 200 if form.id.data else 201


@admin_bp.route('/users/<int:user_id>', methods=['DELETE'])
def delete_user(user_id):
    UserService.delete_user(user_id)
    return jsonify({'success': True})


@admin_bp.route('/departments', methods=['GET'])
def list_departments():
    return jsonify(known_departments())


@admin_bp.route('/departments', methods=['POST'])
def add_department():
    form = DepartmentForm()
    if not form.validate_on_submit():
        return form_errors(form)
    dept = DepartmentService.add_department(form.name.data)
    return jsonify({'id': dept.id, 'name': dept.name}), 201
