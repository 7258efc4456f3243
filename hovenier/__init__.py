# hovenier: offerte -> voorcalculatie -> project -> factuur
