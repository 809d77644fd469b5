import proctrace.cli

if __name__ == "__main__":
    proctrace.cli.main()
