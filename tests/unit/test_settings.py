from consumed.settings import Settings


def test_is_dev_recognises_aliases():
	assert Settings(ENV="development").is_dev() is True
	assert Settings(ENV="dev").is_dev() is True
	assert Settings(ENV="production").is_dev() is False


def test_cors_origins_are_split_from_a_string():
	settings = Settings(CORS_ALLOW_ORIGINS="https://consumed.app, http://localhost:3000,")

	assert settings.cors_allow_origins == ("https://consumed.app", "http://localhost:3000")


def test_settings_expose_only_the_dev_helper():
	assert not hasattr(Settings, "is_prod")
