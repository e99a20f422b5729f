"""Forms for the group blueprint."""

from flask_wtf import FlaskForm
from wtforms import StringField
from wtforms.validators import DataRequired, Length


class CreateGroupForm(FlaskForm):
    """Form for creating a new group."""

    name = StringField(
        "Group Name",
        validators=[
            DataRequired(message="Please enter a group name."),
            Length(max=100),
        ],
    )


class JoinGroupForm(FlaskForm):
    """Form for joining a group by id."""

    group_id = StringField(
        "Group ID", validators=[DataRequired(message="Please enter a Group ID.")]
    )


class LeaveGroupForm(FlaskForm):
    """Empty form; carries the CSRF token for leaving."""
