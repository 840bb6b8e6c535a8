from marshmallow import EXCLUDE, Schema, fields, pre_load, validate, validates

from models.schemas.common import norm_identifier, validate_not_blank


class _InputSchema(Schema):
    class Meta:
        unknown = EXCLUDE


class UserRegisterSchema(_InputSchema):
    # presence/blank checks happen in the register workflow so it can answer 400 vs 409 in order
    fullName = fields.String(load_default=None)
    email = fields.String(load_default=None)
    username = fields.String(load_default=None)
    password = fields.String(load_default=None, load_only=True)

    @pre_load
    def normalize(self, data, **kwargs):
        data = dict(data)
        for key in ("email", "username"):
            if key in data:
                data[key] = norm_identifier(data[key])
        return data

    @validates("email")
    def validate_email(self, value, **kwargs):
        if value:
            validate.Email()(value)


class UserLoginSchema(_InputSchema):
    username = fields.String(load_default=None)
    email = fields.String(load_default=None)
    password = fields.String(required=True, validate=validate_not_blank)


class ChangePasswordSchema(_InputSchema):
    oldPassword = fields.String(required=True, validate=validate_not_blank)
    newPassword = fields.String(required=True, validate=validate_not_blank)


class UpdateAccountSchema(_InputSchema):
    fullName = fields.String(required=True, validate=validate_not_blank)
    email = fields.Email(required=True)


class RefreshTokenSchema(_InputSchema):
    refreshToken = fields.String(load_default=None)


class UserOutSchema(Schema):
    """Public user representation; password hash and refresh token are never dumped."""
    id = fields.String()
    username = fields.String()
    email = fields.String()
    fullName = fields.String(attribute="full_name")
    avatar = fields.String()
    coverImage = fields.String(attribute="cover_image", allow_none=True)
    createdAt = fields.DateTime(attribute="created_at")
    updatedAt = fields.DateTime(attribute="updated_at")


class OwnerSchema(Schema):
    fullName = fields.String(attribute="full_name")
    username = fields.String()
    avatar = fields.String()


class WatchedVideoSchema(Schema):
    id = fields.String()
    videoFile = fields.String(attribute="video_file")
    thumbnail = fields.String()
    title = fields.String()
    description = fields.String(allow_none=True)
    duration = fields.Float()
    views = fields.Integer()
    isPublished = fields.Boolean(attribute="is_published")
    owner = fields.Nested(OwnerSchema)
    createdAt = fields.DateTime(attribute="created_at")


class ChannelProfileSchema(Schema):
    fullName = fields.String()
    username = fields.String()
    subscribersCount = fields.Integer()
    channelsSubscribedToCount = fields.Integer()
    isSubscribed = fields.Boolean()
    avatar = fields.String()
    coverImage = fields.String(allow_none=True)
    email = fields.String()
