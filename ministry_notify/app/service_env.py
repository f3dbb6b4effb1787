import os


class Environment:
    @staticmethod
    def get_env():
        env = os.getenv('ENVIRONMENT', 'DEV').upper()
        if env not in ['DEV', 'TEST', 'PROD']:
            raise ValueError("ENVIRONMENT must be one of 'DEV', 'TEST' or 'PROD'")
        return env

    @staticmethod
    def is_dev_environment():
        return Environment.get_env() == 'DEV'

    @staticmethod
    def is_prod_environment():
        return Environment.get_env() == 'PROD'

    @staticmethod
    def is_emulator():
        return (
            os.getenv('FUNCTIONS_EMULATOR', '').lower() == 'true'
            or bool(os.getenv('FIRESTORE_EMULATOR_HOST'))
        )

    @staticmethod
    def is_test_environment():
        return Environment.get_env() == 'TEST' or Environment.is_emulator()
