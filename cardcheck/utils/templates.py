from fastapi.templating import Jinja2Templates

from cardcheck.config import TEMPLATES_DIR

# Moteur partagé (autoescape activé par Starlette)
templates = Jinja2Templates(directory=str(TEMPLATES_DIR))
