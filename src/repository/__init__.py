"""Repository locators, hosting providers and the git collaborator."""
