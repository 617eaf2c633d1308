from jenkins_runner.cli import cli_start

if __name__ == "__main__":
    cli_start()
