from colimalib.scripts.daemon import setup


if __name__ == "__main__":
    setup()
