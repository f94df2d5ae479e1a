"""Study Dashboard: study modules, AI-generated exam simulations and an admin panel."""
