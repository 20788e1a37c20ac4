from converter.main import app

app(prog_name="converter")
