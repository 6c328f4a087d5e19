from flask_wtf import FlaskForm
from wtforms import PasswordField, StringField
from wtforms.validators import DataRequired, Email, Length, Optional


class RegisterForm(FlaskForm):
    email = StringField(
        "Email",
        validators=[DataRequired(), Email(), Length(1, 200)],
    )
    password = PasswordField(
        "Password",
        validators=[DataRequired(), Length(8, 128)],
    )
    display_name = StringField(
        "Display Name",
        validators=[Optional(), Length(1, 100)],
    )


class LoginForm(FlaskForm):
    email    = StringField("Email", validators=[DataRequired(), Email()])
    password = PasswordField("Password", validators=[DataRequired()])
