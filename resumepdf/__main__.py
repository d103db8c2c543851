from resumepdf.main import run

run()
