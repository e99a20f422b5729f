"""Forms for the profile blueprint."""

from flask_wtf import FlaskForm
from wtforms import StringField
from wtforms.validators import DataRequired, Length


class DisplayNameForm(FlaskForm):
    """Form for setting the display name."""

    name = StringField(
        "Your Display Name",
        validators=[DataRequired(message="Please enter a name."), Length(max=80)],
    )
