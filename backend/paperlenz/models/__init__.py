from paperlenz.models.models import User, Paper, AcademicLevel, InputType

__all__ = ["User", "Paper", "AcademicLevel", "InputType"]
