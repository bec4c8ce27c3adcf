from sqlalchemy.orm import declarative_base

Base = declarative_base()
import app.models.user
import app.models.refresh_token
import app.models.institute
import app.models.student
import app.models.course
import app.models.result
