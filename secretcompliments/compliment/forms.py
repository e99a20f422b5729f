"""Forms for the compliment blueprint."""

from flask_wtf import FlaskForm
from wtforms import StringField, TextAreaField
from wtforms.validators import DataRequired, Length

MISSING_FIELDS_MESSAGE = "Please select a member and write a message."


class ComplimentForm(FlaskForm):
    """Form for sending a compliment."""

    receiver_id = StringField(
        "Send to", validators=[DataRequired(message=MISSING_FIELDS_MESSAGE)]
    )
    message = TextAreaField(
        "Message",
        validators=[DataRequired(message=MISSING_FIELDS_MESSAGE), Length(max=1000)],
    )
