from __future__ import annotations

from flask import Flask, g, request

from ..common.http import json_body, make_auth_required, pagination, query_bool, query_int, success
from ..common.validators import require_choice
from ..core.constants import DEFAULT_USER_PAGE_LIMIT
from ..core.enums import Role
from ..container import Container
from ..database.mongo_base import page_window
from .model import UserFilter


def register(app: Flask, container: Container) -> None:
    auth_required = make_auth_required(container.auth_service)

    @app.route("/api/auth/register", methods=["POST"], endpoint="auth_register")
    def auth_register():
        data = json_body()
        result = container.auth_service.register(
            first_name=data.get("first_name", ""),
            last_name=data.get("last_name", ""),
            email=data.get("email", ""),
            password=data.get("password", ""),
            role=data.get("role") or Role.EMPLOYEE.value,
            company=data.get("company"),
            department=data.get("department"),
            designation=data.get("designation"),
            phone=data.get("phone"),
        )
        return success(
            201,
            message="User registered successfully",
            token=result.token,
            user=result.user.to_public(),
        )

    @app.route("/api/auth/login", methods=["POST"], endpoint="auth_login")
    def auth_login():
        data = json_body()
        identifier = data.get("email") or data.get("login_id") or data.get("identifier") or ""
        result = container.auth_service.login(identifier, data.get("password", ""))
        return success(message="Login successful", token=result.token, user=result.user.to_public())

    @app.route("/api/auth/me", methods=["GET"], endpoint="auth_me")
    @auth_required()
    def auth_me():
        user = container.auth_service.me(g.current_user)
        return success(user=user.to_public())

    @app.route("/api/auth/users", methods=["GET"], endpoint="auth_users")
    @auth_required(Role.ADMIN)
    def auth_users():
        users = container.user_service.list_all(g.current_user)
        return success(count=len(users), users=[u.to_public() for u in users])

    @app.route("/api/users", methods=["GET"], endpoint="users_list")
    @auth_required(Role.ADMIN, Role.HR_OFFICER, Role.PAYROLL_OFFICER)
    def users_list():
        role = request.args.get("role")
        filters = UserFilter(
            role=require_choice(role, Role, "role") if role else None,
            department=request.args.get("department") or None,
            is_active=query_bool("is_active"),
            search=request.args.get("search") or None,
        )
        page = query_int("page", 1, maximum=None)
        limit = query_int("limit", DEFAULT_USER_PAGE_LIMIT)
        skip, limit = page_window(page, limit)

        users, total = container.user_service.list_users(g.current_user, filters, skip=skip, limit=limit)
        return success(
            count=len(users),
            users=[u.to_public() for u in users],
            pagination=pagination(page=page, limit=limit, total=total),
        )

    @app.route("/api/users", methods=["POST"], endpoint="users_create")
    @auth_required(Role.ADMIN, Role.HR_OFFICER)
    def users_create():
        data = json_body()
        user = container.user_service.create_user(
            g.current_user,
            first_name=data.get("first_name", ""),
            last_name=data.get("last_name", ""),
            email=data.get("email", ""),
            password=data.get("password"),
            role=data.get("role") or Role.EMPLOYEE.value,
            company=data.get("company"),
            department=data.get("department"),
            designation=data.get("designation"),
            phone=data.get("phone"),
            salary=data.get("salary", 0),
        )
        return success(201, message="User created successfully", user=user.to_public())

    @app.route("/api/users/<user_id>", methods=["GET"], endpoint="users_get")
    @auth_required()
    def users_get(user_id: str):
        user = container.user_service.get_user(g.current_user, user_id)
        return success(user=user.to_public())

    @app.route("/api/users/<user_id>", methods=["PUT"], endpoint="users_update")
    @auth_required(Role.ADMIN, Role.HR_OFFICER)
    def users_update(user_id: str):
        user = container.user_service.update_user(g.current_user, user_id, json_body())
        return success(message="User updated successfully", user=user.to_public())

    @app.route("/api/users/<user_id>", methods=["DELETE"], endpoint="users_delete")
    @auth_required(Role.ADMIN)
    def users_delete(user_id: str):
        container.user_service.deactivate_user(g.current_user, user_id)
        return success(message="User deactivated successfully")
