from app.archope import create_app

app = create_app()
