from flask_wtf import FlaskForm
from wtforms import StringField, TextAreaField, IntegerField, BooleanField
from wtforms.validators import DataRequired, InputRequired, Length, NumberRange, AnyOf, Optional

from readerboard.firestore_models import STATUSES, LOG_UNITS


class ApiForm(FlaskForm):
    """Form bound to a JSON request body. The host frame supplies identity, so no CSRF token."""

    class Meta:
        csrf = False


class ProfileForm(ApiForm):
    fid = IntegerField('fid', validators=[NumberRange(min=1, message='fid must be a positive integer')])
    username = StringField('username', validators=[Optional(), Length(max=64)])
    displayName = StringField('displayName', validators=[Optional(), Length(max=120)])
    pfpUrl = StringField('pfpUrl', validators=[Optional(), Length(max=2048)])


class NotificationsForm(ApiForm):
    enabled = BooleanField('enabled')


class LibraryEntryForm(ApiForm):
    status = StringField('status', validators=[InputRequired(), AnyOf(STATUSES, message='Unknown status')])
    review = TextAreaField('review', validators=[Optional(), Length(max=5000)])


class StatusForm(ApiForm):
    bookKey = StringField('bookKey', validators=[DataRequired(message='bookKey is required')])
    status = StringField('status', validators=[InputRequired(), AnyOf(STATUSES, message='Unknown status')])


class ReadingLogForm(ApiForm):
    bookKey = StringField('bookKey', validators=[DataRequired(message='bookKey is required')])
    page = IntegerField('page', validators=[NumberRange(min=0, message='page must be zero or more')])
    thoughts = TextAreaField('thoughts', validators=[Optional(), Length(max=2000)])
    unit = StringField('unit', validators=[Optional(), AnyOf(LOG_UNITS, message='Unknown unit')])
    skipped = BooleanField('skipped')


class LikeForm(ApiForm):
    fid = IntegerField('fid', validators=[NumberRange(min=1, message='fid must be a positive integer')])


class CustomBookForm(ApiForm):
    title = StringField('title', validators=[DataRequired(message='title is required'), Length(max=300)])
    description = TextAreaField('description', validators=[Optional(), Length(max=5000)])
    coverUrl = StringField('coverUrl', validators=[Optional(), Length(max=2048)])
    first_publish_year = IntegerField('first_publish_year', validators=[Optional()])
    createdBy = IntegerField('createdBy', validators=[Optional()])


class CustomBookUpdateForm(ApiForm):
    title = StringField('title', validators=[Optional(), Length(max=300)])
    description = TextAreaField('description', validators=[Optional(), Length(max=5000)])
    coverUrl = StringField('coverUrl', validators=[Optional(), Length(max=2048)])
    first_publish_year = IntegerField('first_publish_year', validators=[Optional()])
