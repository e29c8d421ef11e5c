from marshmallow import Schema, fields, pre_load, validates, validate, ValidationError

from models.user import ROLES


def _norm_email(v):
    return v.strip().lower() if isinstance(v, str) else v


class UserSignupSchema(Schema):
    name = fields.String(required=True, validate=validate.Length(min=1, max=255))
    email = fields.Email(required=True)
    password = fields.String(required=True, load_only=True)

    @pre_load
    def normalize(self, data, **kwargs):
        if isinstance(data, dict) and "email" in data:
            data["email"] = _norm_email(data["email"])
        return data

    @validates("password")
    def validate_password(self, value, **kwargs):
        if len(value) < 6:
            raise ValidationError("Password must be at least 6 characters long.")


class UserLoginSchema(Schema):
    email = fields.String(required=True)
    password = fields.String(required=True, load_only=True)

    @pre_load
    def normalize(self, data, **kwargs):
        if isinstance(data, dict) and "email" in data:
            data["email"] = _norm_email(data["email"])
        return data


class RoleUpdateSchema(Schema):
    role = fields.String(required=True, validate=validate.OneOf(ROLES))


class UserOutSchema(Schema):
    id = fields.String(allow_none=False)
    name = fields.String(allow_none=True)
    email = fields.String(allow_none=False)
    role = fields.String()
